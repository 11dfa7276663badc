"""
Credential Resolution

Turns a configured token value plus a named fallback environment
variable into a concrete secret.

Rules, checked in order:
1. Empty value  -> read the default environment variable
2. ``$NAME``    -> read environment variable ``NAME``
3. Anything else is the literal token

The environment is passed in as a mapping snapshot so callers decide
where it comes from; nothing here touches the network or disk.
"""

import os
from dataclasses import dataclass
from enum import Enum
from typing import Mapping, Optional

from ..utils.errors import MissingCredential

BOT_TOKEN_ENV = "SLACK_BOT_TOKEN"
APP_TOKEN_ENV = "SLACK_APP_TOKEN"

ENV_MARKER = "$"


class CredentialSource(Enum):
    """Where a resolved credential came from."""
    LITERAL = "literal"
    ENV_INDIRECT = "env_indirect"
    DEFAULT_ENV = "default_env"


@dataclass(frozen=True)
class Credential:
    """A resolved Slack token. ``repr`` never shows the secret."""

    value: str
    source: CredentialSource
    env_var: Optional[str] = None

    def __repr__(self) -> str:
        origin = f", env_var={self.env_var!r}" if self.env_var else ""
        return f"Credential(source={self.source.value}{origin})"

    __str__ = __repr__

    def bearer(self) -> str:
        return f"Bearer {self.value}"


def _read_env(environ: Mapping[str, str], name: str) -> str:
    value = (environ.get(name) or "").strip()
    if not value:
        raise MissingCredential(name or "<empty variable name>")
    return value


def resolve_credential(
    config_value: Optional[str],
    default_env_var: str,
    environ: Optional[Mapping[str, str]] = None,
) -> Credential:
    """
    Resolve a token.

    Args:
        config_value: Configured value: empty, ``$ENV_NAME`` or a literal token
        default_env_var: Variable consulted when ``config_value`` is empty
        environ: Environment snapshot (defaults to ``os.environ``)

    Returns:
        The resolved Credential

    Raises:
        MissingCredential: If the referenced variable is unset or empty
    """
    env = os.environ if environ is None else environ
    value = (config_value or "").strip()

    if not value:
        return Credential(
            value=_read_env(env, default_env_var),
            source=CredentialSource.DEFAULT_ENV,
            env_var=default_env_var,
        )

    if value.startswith(ENV_MARKER):
        name = value[len(ENV_MARKER):].strip()
        return Credential(
            value=_read_env(env, name),
            source=CredentialSource.ENV_INDIRECT,
            env_var=name,
        )

    return Credential(value=value, source=CredentialSource.LITERAL)
