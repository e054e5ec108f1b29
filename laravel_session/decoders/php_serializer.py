# laravel_session/decoders/php_serializer.py
"""
Reader and writer for PHP's native ``serialize()`` format.

Grammar (one value, every scalar terminated by ``;``)::

    N;                          null
    b:<0|1>;                    bool
    i:<int>;                    int
    d:<float|INF|-INF|NAN>;     float
    s:<len>:"<bytes>";          string, <len> counts bytes
    a:<n>:{<key><value>...}     ordered array, keys are i or s values
    O:<len>:"<class>":<n>:{...} object, members as in arrays

Parsing and writing go through :mod:`phpserialize`. This module adds the
class registry on top: PHP arrays become plain ``dict``s (insertion order
is wire order, keys may mix ``int`` and ``str``) and objects become
:class:`PhpObject` instances whose reconstruction shape comes from a
:class:`ClassRegistry`. Objects of unregistered classes are rejected.
"""

import re
import threading
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from enum import Enum
from io import BytesIO
from typing import Any, Dict, List, Mapping, Optional, Tuple, Union
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

import phpserialize

from laravel_session.core.exceptions import serialization_error

_OFFSET_RE = re.compile(r"^([+-])(\d{2}):?(\d{2})$")


class ObjectShape(str, Enum):
    """How a serialized PHP object is reconstructed"""
    PROPERTY_BAG = "property_bag"
    ARRAY_LIKE = "array_like"
    DATE_LIKE = "date_like"
    MESSAGE_BAG = "message_bag"


# Laravel classes that routinely end up in session payloads
DEFAULT_CLASS_SHAPES: Dict[str, ObjectShape] = {
    "stdClass": ObjectShape.PROPERTY_BAG,
    "Illuminate\\Support\\Collection": ObjectShape.ARRAY_LIKE,
    "Illuminate\\Database\\Eloquent\\Collection": ObjectShape.ARRAY_LIKE,
    "Illuminate\\Support\\Carbon": ObjectShape.DATE_LIKE,
    "Carbon\\Carbon": ObjectShape.DATE_LIKE,
    "Carbon\\CarbonImmutable": ObjectShape.DATE_LIKE,
    "Illuminate\\Support\\MessageBag": ObjectShape.MESSAGE_BAG,
    "Illuminate\\Support\\ViewErrorBag": ObjectShape.MESSAGE_BAG,
}

# Accepted as property bags even when nobody registered them
FALLBACK_CLASSES = frozenset({
    "stdClass",
    "ArrayObject",
    "ArrayIterator",
    "SplObjectStorage",
    "DateTime",
    "DateTimeImmutable",
    "DateTimeZone",
    "__PHP_Incomplete_Class",
})


def demangle(name: Any) -> Any:
    """Strip PHP's visibility mangling (``\\0*\\0prop``, ``\\0Class\\0prop``)"""
    if isinstance(name, str) and name.startswith("\0"):
        _, sep, plain = name[1:].partition("\0")
        if sep:
            return plain
    return name


@dataclass
class PhpObject:
    """A deserialized PHP object: class name, shape and raw members"""
    class_name: str
    shape: ObjectShape = ObjectShape.PROPERTY_BAG
    properties: Dict[Any, Any] = field(default_factory=dict)

    def get(self, name: Any, default: Any = None) -> Any:
        """Property lookup by plain name, ignoring visibility mangling"""
        if name in self.properties:
            return self.properties[name]
        for raw, value in self.properties.items():
            if demangle(raw) == name:
                return value
        return default

    def __contains__(self, name: Any) -> bool:
        sentinel = object()
        return self.get(name, sentinel) is not sentinel

    @property
    def attributes(self) -> Dict[Any, Any]:
        return {demangle(k): v for k, v in self.properties.items()}

    @property
    def value(self) -> Any:
        """Python view of the object according to its shape"""
        if self.shape is ObjectShape.ARRAY_LIKE:
            items = self.get("items")
            return items if items is not None else {}
        if self.shape is ObjectShape.DATE_LIKE:
            return self._as_datetime()
        if self.shape is ObjectShape.MESSAGE_BAG:
            messages = self.get("messages")
            if messages is None:
                messages = self.get("bags")
            return messages if messages is not None else {}
        return self.attributes

    def _as_datetime(self) -> Optional[datetime]:
        raw = self.get("date")
        if not isinstance(raw, str):
            return None
        try:
            parsed = datetime.strptime(raw, "%Y-%m-%d %H:%M:%S.%f")
        except ValueError:
            try:
                parsed = datetime.strptime(raw, "%Y-%m-%d %H:%M:%S")
            except ValueError:
                return None

        tz = _parse_timezone(self.get("timezone"))
        return parsed.replace(tzinfo=tz) if tz is not None else parsed


def _parse_timezone(name: Any):
    if not isinstance(name, str) or not name:
        return None
    if name.upper() in ("UTC", "Z", "GMT"):
        return timezone.utc
    match = _OFFSET_RE.match(name)
    if match:
        sign, hours, minutes = match.groups()
        delta = timedelta(hours=int(hours), minutes=int(minutes))
        return timezone(-delta if sign == "-" else delta)
    try:
        return ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError):
        return None


class ClassRegistry:
    """
    Maps fully-qualified PHP class names to reconstruction shapes.

    Registration is additive (re-registering overwrites); entries are never
    removed. Reads and writes are lock-guarded so a registry can be shared
    between threads that decode while others register.
    """

    def __init__(self, shapes: Optional[Mapping[str, ObjectShape]] = None):
        self._lock = threading.RLock()
        self._shapes: Dict[str, ObjectShape] = {}
        if shapes:
            self.register_many(shapes)

    @classmethod
    def with_defaults(cls) -> "ClassRegistry":
        return cls(DEFAULT_CLASS_SHAPES)

    def register(self, class_name: str, shape: Union[ObjectShape, str] = ObjectShape.PROPERTY_BAG) -> None:
        if not class_name:
            raise ValueError("class_name must not be empty")
        shape = ObjectShape(shape)
        with self._lock:
            self._shapes[class_name] = shape

    def register_many(self, shapes: Mapping[str, Union[ObjectShape, str]]) -> None:
        converted = {name: ObjectShape(shape) for name, shape in shapes.items()}
        with self._lock:
            self._shapes.update(converted)

    def get(self, class_name: str) -> Optional[ObjectShape]:
        with self._lock:
            return self._shapes.get(class_name)

    def resolve(self, class_name: str) -> Optional[ObjectShape]:
        """Registered shape, the property-bag fallback, or None if unknown"""
        shape = self.get(class_name)
        if shape is None and class_name in FALLBACK_CLASSES:
            return ObjectShape.PROPERTY_BAG
        return shape

    def names(self) -> Tuple[str, ...]:
        with self._lock:
            return tuple(self._shapes)

    def copy(self) -> "ClassRegistry":
        with self._lock:
            return ClassRegistry(dict(self._shapes))

    def __contains__(self, class_name: str) -> bool:
        with self._lock:
            return class_name in self._shapes

    def __len__(self) -> int:
        with self._lock:
            return len(self._shapes)




class PhpUnserializer:
    """
    Parses PHP ``serialize()`` output against a class registry.

    Each instance owns a registry (a fresh default one unless given); pass
    the same registry to several unserializers to make them agree.
    """

    def __init__(self, registry: Optional[ClassRegistry] = None, encoding: str = "utf-8"):
        self.registry = registry if registry is not None else ClassRegistry.with_defaults()
        self.encoding = encoding

    def _object_hook(self, class_name: str, properties: Dict[Any, Any]) -> PhpObject:
        shape = self.registry.resolve(class_name)
        if shape is None:
            raise serialization_error(
                f"Unknown class '{class_name}' is not registered",
                class_name=class_name
            )
        return PhpObject(class_name=class_name, shape=shape, properties=properties)

    @staticmethod
    def _array_hook(items: List[Tuple[Any, Any]]) -> Dict[Any, Any]:
        for key, _ in items:
            if isinstance(key, bool) or not isinstance(key, (int, str)):
                raise serialization_error("Array keys must be integers or strings")
        return dict(items)

    def unserialize(self, data: Union[str, bytes]) -> Any:
        """
        Parse one serialized value.

        Raises:
            MalformedSerializationError: on truncated input, length
                mismatches, unknown tags, trailing data, or unregistered
                classes
        """
        if isinstance(data, str):
            data = data.encode(self.encoding, "surrogateescape")
        if not isinstance(data, (bytes, bytearray)):
            raise serialization_error(f"Cannot unserialize {type(data).__name__}")

        fp = BytesIO(bytes(data))
        try:
            value = phpserialize.load(
                fp,
                charset=self.encoding,
                errors="surrogateescape",
                decode_strings=True,
                object_hook=self._object_hook,
                array_hook=self._array_hook,
            )
        except RecursionError as e:
            raise serialization_error("Nesting too deep", offset=fp.tell()) from e
        except (TypeError, ValueError) as e:
            raise serialization_error(f"Malformed serialized data: {e}", offset=fp.tell()) from e

        # phpserialize stops after one value
        if fp.read().strip():
            raise serialization_error("Unexpected trailing data after value", offset=fp.tell())
        return value


def unserialize(data: Union[str, bytes], registry: Optional[ClassRegistry] = None) -> Any:
    return PhpUnserializer(registry).unserialize(data)


def to_builtin(value: Any) -> Any:
    """Replace PhpObjects (recursively) by their shape views, dates by ISO text"""
    if isinstance(value, PhpObject):
        value = value.value
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, dict):
        return {key: to_builtin(item) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [to_builtin(item) for item in value]
    return value


def _dump_hook(value: Any) -> Any:
    if isinstance(value, PhpObject):
        return phpserialize.phpobject(value.class_name, value.properties)
    if isinstance(value, Mapping):
        return dict(value)
    raise TypeError(f"Cannot serialize {type(value).__name__} to PHP format")


def serialize(value: Any) -> str:
    """PHP ``serialize()`` of a value tree produced by :func:`unserialize`"""
    dumped = phpserialize.dumps(value, errors="surrogateescape", object_hook=_dump_hook)
    return dumped.decode("utf-8", "surrogateescape")
