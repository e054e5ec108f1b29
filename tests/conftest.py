# tests/conftest.py
"""
Shared fixtures for laravel-session tests.

Provides Laravel-compatible cookie encryption and payload encoding so tests
can build realistic inputs without a Laravel installation.
"""

import base64
import hashlib
import hmac
import json
import os

import pytest
from Crypto.Cipher import AES
from Crypto.Util.Padding import pad

from laravel_session.core.security import LogLevel, set_log_level

APP_KEY_BYTES = bytes(range(32))
APP_KEY = "base64:" + base64.b64encode(APP_KEY_BYTES).decode()

# The literal session payload from the validation scenarios
SCENARIO_SERIALIZED = 'a:2:{s:14:"login_web_59ba";i:42;s:6:"_token";s:6:"tok123";}'


def build_envelope(iv: bytes, ciphertext: bytes, key: bytes = APP_KEY_BYTES, mac: str = None) -> str:
    """Laravel Encrypter envelope: base64(json({iv, value, mac}))"""
    iv_b64 = base64.b64encode(iv).decode()
    value_b64 = base64.b64encode(ciphertext).decode()
    if mac is None:
        mac = hmac.new(key, (iv_b64 + value_b64).encode(), hashlib.sha256).hexdigest()
    envelope = json.dumps({"iv": iv_b64, "value": value_b64, "mac": mac, "tag": ""})
    return base64.b64encode(envelope.encode()).decode()


@pytest.fixture
def app_key():
    return APP_KEY


@pytest.fixture
def app_key_bytes():
    return APP_KEY_BYTES


@pytest.fixture
def encrypt_cookie():
    """Encrypt a value exactly like Laravel's Encrypter (AES-256-CBC)"""
    def _encrypt(value: str, key: bytes = APP_KEY_BYTES) -> str:
        iv = os.urandom(16)
        ciphertext = AES.new(key, AES.MODE_CBC, iv=iv).encrypt(pad(value.encode(), AES.block_size))
        return build_envelope(iv, ciphertext, key)
    return _encrypt


@pytest.fixture
def encode_payload():
    """Base64-encode a serialized session like Laravel's database handler"""
    def _encode(serialized: str) -> str:
        return base64.b64encode(serialized.encode("utf-8")).decode()
    return _encode


@pytest.fixture
def scenario_payload(encode_payload):
    return encode_payload(SCENARIO_SERIALIZED)


@pytest.fixture(autouse=True)
def secure_log_level():
    """Every test starts (and ends) in secure logging mode"""
    set_log_level(LogLevel.SECURE)
    yield
    set_log_level(LogLevel.SECURE)


@pytest.fixture
def envelope_builder():
    return build_envelope
