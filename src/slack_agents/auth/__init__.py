"""
Auth Module

Token resolution for bot (API) and app (Socket Mode) credentials.
"""

from .credentials import (
    APP_TOKEN_ENV,
    BOT_TOKEN_ENV,
    Credential,
    CredentialSource,
    resolve_credential,
)

__all__ = [
    "APP_TOKEN_ENV",
    "BOT_TOKEN_ENV",
    "Credential",
    "CredentialSource",
    "resolve_credential",
]
