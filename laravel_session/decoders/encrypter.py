# laravel_session/decoders/encrypter.py
"""
Decryption of Laravel's encrypted cookies.

Laravel's ``Encrypter`` emits ``base64(json({iv, value, mac}))`` where ``iv``
and ``value`` are base64 strings and ``mac`` is
``hex(hmac_sha256(key, iv . value))`` computed over those base64 strings as
text, not over the raw bytes. The cipher is AES in CBC mode with PKCS#7
padding.
"""

import base64
import binascii
import hashlib
import hmac
import json
import logging
from typing import Optional
from urllib.parse import unquote

from Crypto.Cipher import AES
from Crypto.Util.Padding import unpad

from laravel_session.core.exceptions import (
    MalformedSerializationError,
    config_error,
    decryption_error,
)
from laravel_session.core.security import sanitize_session_id, should_sanitize
from laravel_session.decoders.php_serializer import PhpUnserializer

logger = logging.getLogger(__name__)

APP_KEY_PREFIX = "base64:"
COOKIE_VALUE_SEPARATOR = "|"

# key length -> cipher name, as in Laravel's Encrypter::$supportedCiphers
SUPPORTED_KEY_LENGTHS = {
    16: "aes-128-cbc",
    32: "aes-256-cbc",
}


def parse_app_key(app_key: str) -> bytes:
    """Raw key bytes from an APP_KEY value, with or without ``base64:``"""
    if not app_key:
        raise config_error("APP_KEY is empty", component="encrypter")

    if app_key.startswith(APP_KEY_PREFIX):
        app_key = app_key[len(APP_KEY_PREFIX):]

    try:
        return base64.b64decode(app_key, validate=True)
    except (binascii.Error, ValueError) as e:
        raise config_error("APP_KEY is not valid base64", component="encrypter") from e


def extract_session_id(value: str) -> str:
    """
    Strip Laravel's cookie value prefix.

    Since Laravel 6.x decrypted cookie values look like
    ``<hmac-sha1 of cookie name>|<session id>``; only the part after the
    first separator identifies the session.
    """
    if COOKIE_VALUE_SEPARATOR in value:
        _, _, value = value.partition(COOKIE_VALUE_SEPARATOR)
    return value


class CookieDecryptor:
    """Verifies and decrypts Laravel cookie envelopes with the APP_KEY"""

    def __init__(self, app_key: str, unserializer: Optional[PhpUnserializer] = None):
        self._key = parse_app_key(app_key)
        self.cipher = SUPPORTED_KEY_LENGTHS.get(len(self._key))
        if self.cipher is None:
            raise config_error(
                f"Unsupported APP_KEY length {len(self._key)} bytes, expected 16 or 32",
                component="encrypter"
            )
        self._unserializer = unserializer or PhpUnserializer()

    def _parse_envelope(self, envelope: str) -> dict:
        # cookies often arrive still URL-encoded (%3D padding)
        envelope = unquote(envelope or "")
        try:
            payload = json.loads(base64.b64decode(envelope, validate=False))
        except (binascii.Error, ValueError, TypeError) as e:
            raise decryption_error("Cookie envelope is not valid base64 JSON", stage="envelope") from e

        if not isinstance(payload, dict):
            raise decryption_error("Cookie envelope is not a JSON object", stage="envelope")

        for field in ("iv", "value", "mac"):
            if not isinstance(payload.get(field), str):
                raise decryption_error(f"Cookie envelope is missing '{field}'", stage="envelope")

        return payload

    def _calculate_mac(self, iv: str, value: str) -> bytes:
        # Laravel hashes the base64 text of iv and value, not the decoded bytes
        message = (iv + value).encode("utf-8", "surrogatepass")
        return hmac.new(self._key, message, hashlib.sha256).hexdigest().encode("ascii")

    def decrypt(self, envelope: str) -> str:
        """
        Verify and decrypt an envelope, returning the plaintext value.

        A plaintext of the form ``s:<len>:"...";`` is unwrapped to the inner
        string.

        Raises:
            DecryptionError: malformed envelope, MAC mismatch, or cipher failure
        """
        payload = self._parse_envelope(envelope)

        calculated = self._calculate_mac(payload["iv"], payload["value"])
        # compare_digest only accepts ASCII str, so compare the encoded forms
        if not hmac.compare_digest(calculated, payload["mac"].encode("utf-8", "surrogatepass")):
            raise decryption_error("The MAC is invalid", stage="mac")

        logger.debug("Cookie MAC verified")

        try:
            iv = base64.b64decode(payload["iv"], validate=True)
            ciphertext = base64.b64decode(payload["value"], validate=True)
            decipher = AES.new(self._key, AES.MODE_CBC, iv=iv)
            plaintext = unpad(decipher.decrypt(ciphertext), AES.block_size)
            result = plaintext.decode("utf-8")
        except (binascii.Error, ValueError, UnicodeDecodeError) as e:
            raise decryption_error("Could not decrypt the data", stage="cipher") from e

        if result.startswith("s:"):
            try:
                unwrapped = self._unserializer.unserialize(result)
            except MalformedSerializationError:
                unwrapped = None
            if isinstance(unwrapped, str):
                result = unwrapped

        if should_sanitize():
            logger.debug(f"Cookie decrypted ({len(result)} chars)")
        else:
            logger.debug(f"Cookie decrypted: {result}")

        return result

    def decrypt_session_id(self, envelope: str) -> str:
        """Decrypt a session cookie and return the bare session id"""
        session_id = extract_session_id(self.decrypt(envelope))
        logger.debug(f"Session id from cookie: {sanitize_session_id(session_id)}")
        return session_id
