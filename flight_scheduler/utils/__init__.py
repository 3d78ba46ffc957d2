"""Utility helpers for the flight scheduler backend."""

from .security import (
    AuthenticationError,
    create_access_token,
    decode_access_token,
    generate_temporary_password,
    hash_password,
    password_strength_errors,
    verify_password,
)

__all__ = [
    "hash_password",
    "verify_password",
    "generate_temporary_password",
    "password_strength_errors",
    "create_access_token",
    "decode_access_token",
    "AuthenticationError",
]
