"""
Security helpers for laravel-session.

Keeps secrets out of diagnostic logs: a process-wide verbosity switch plus
masking and redaction helpers used by the decoders, stores and validator.
"""

from .sanitization import (
    LogLevel,
    set_log_level,
    get_log_level,
    should_sanitize,
    mask_sensitive,
    sanitize_session_id,
    sanitize_object,
    sanitize_array,
    sanitize_error,
)

__all__ = [
    'LogLevel',
    'set_log_level',
    'get_log_level',
    'should_sanitize',
    'mask_sensitive',
    'sanitize_session_id',
    'sanitize_object',
    'sanitize_array',
    'sanitize_error',
]
