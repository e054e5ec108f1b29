"""
Log sanitization for laravel-session.

A process-wide verbosity switch decides whether diagnostic logs may carry
raw secrets (session ids, decrypted cookies, payload dumps). ``secure`` is
the default and masks or drops such values; ``verbose`` is meant for local
development only.
"""

import re
import threading
from enum import Enum
from typing import Any, Iterable, List, Optional


class LogLevel(str, Enum):
    SECURE = "secure"
    VERBOSE = "verbose"


_level = LogLevel.SECURE
_level_lock = threading.Lock()

REDACTED = "[REDACTED]"

DEFAULT_SENSITIVE_KEYS = (
    "password",
    "token",
    "secret",
    "key",
    "app_key",
    "api_key",
    "session_id",
    "sessionid",
    "csrf",
    "mac",
    "iv",
    "value",
    "decrypted",
    "payload",
)

_ERROR_PATTERNS = [
    (re.compile(r"password[=:]\s*[^\s,}]+", re.IGNORECASE), "password=[REDACTED]"),
    (re.compile(r"token[=:]\s*[^\s,}]+", re.IGNORECASE), "token=[REDACTED]"),
    (re.compile(r"key[=:]\s*[^\s,}]+", re.IGNORECASE), "key=[REDACTED]"),
    (re.compile(r"session[=:]\s*[^\s,}]+", re.IGNORECASE), "session=[REDACTED]"),
]


def set_log_level(level) -> None:
    """Switch between ``secure`` and ``verbose`` diagnostic logging"""
    global _level
    level = LogLevel(level)
    with _level_lock:
        _level = level


def get_log_level() -> LogLevel:
    return _level


def should_sanitize() -> bool:
    return _level is LogLevel.SECURE


def mask_sensitive(value: Optional[str], visible_chars: int = 4) -> str:
    """
    Mask a secret, keeping the first and last ``visible_chars`` characters.

    Short values are masked completely.
    """
    if not value:
        return REDACTED

    if len(value) <= visible_chars * 2:
        return "*" * len(value)

    start = value[:visible_chars]
    end = value[-visible_chars:]
    return f"{start}{'*' * (len(value) - visible_chars * 2)}{end}"


def sanitize_session_id(session_id: Optional[str]) -> str:
    """Session id for logs: full in verbose mode, first 8 chars otherwise"""
    if not session_id:
        return REDACTED

    if not should_sanitize():
        return session_id

    if len(session_id) <= 8:
        return "*" * len(session_id)

    return f"{session_id[:8]}...{'*' * 16}"


def _is_sensitive(key: Any, sensitive_keys: Iterable[str]) -> bool:
    lower_key = str(key).lower()
    return any(sk in lower_key for sk in sensitive_keys)


def sanitize_object(obj: Any, sensitive_keys: Optional[List[str]] = None) -> Any:
    """
    Return a copy of ``obj`` with sensitive keys redacted (recursively).

    In verbose mode the object is returned unchanged.
    """
    if not isinstance(obj, (dict, list, tuple)):
        return obj

    if not should_sanitize():
        return obj

    keys = [k.lower() for k in DEFAULT_SENSITIVE_KEYS]
    if sensitive_keys:
        keys.extend(k.lower() for k in sensitive_keys)

    if isinstance(obj, (list, tuple)):
        return [sanitize_object(item, sensitive_keys) for item in obj]

    sanitized = {}
    for key, item in obj.items():
        if _is_sensitive(key, keys):
            sanitized[key] = "[REDACTED OBJECT]" if isinstance(item, (dict, list, tuple)) else REDACTED
        else:
            sanitized[key] = sanitize_object(item, sensitive_keys)
    return sanitized


def sanitize_array(values: Any, max_items: int = 3) -> Any:
    """Mask and truncate a list of secrets for logging"""
    if not isinstance(values, list):
        return values

    sanitized = [
        mask_sensitive(item) if isinstance(item, str) else sanitize_object(item)
        for item in values[:max_items]
    ]
    if len(values) > max_items:
        sanitized.append(f"... and {len(values) - max_items} more items")
    return sanitized


def sanitize_error(error: Any) -> str:
    """Error text for logs with credentials scrubbed in secure mode"""
    if error is None or error == "":
        return "Unknown error"

    text = error if isinstance(error, str) else str(error)

    if not should_sanitize():
        return text

    if not text:
        return "[REDACTED ERROR]"

    for pattern, replacement in _ERROR_PATTERNS:
        text = pattern.sub(replacement, text)
    return text
