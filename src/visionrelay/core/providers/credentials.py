from __future__ import annotations

import os
from collections.abc import Mapping
from typing import Protocol, runtime_checkable


@runtime_checkable
class CredentialLookup(Protocol):
    def has_key(self, credential_id: str) -> bool: ...

    def get_key(self, credential_id: str) -> str | None: ...


class StaticCredentials:
    """In-memory key store. Blank keys count as absent."""

    def __init__(self, keys: Mapping[str, str | None] | None = None) -> None:
        self._keys: dict[str, str] = {}
        for credential_id, key in (keys or {}).items():
            if key and key.strip():
                self._keys[credential_id] = key.strip()

    def get_key(self, credential_id: str) -> str | None:
        return self._keys.get(credential_id)

    def has_key(self, credential_id: str) -> bool:
        return bool(self.get_key(credential_id))


class EnvCredentials:
    """Reads keys from environment variables, one variable per credential family."""

    def __init__(self, env_vars: Mapping[str, str]) -> None:
        self.env_vars = dict(env_vars)

    def get_key(self, credential_id: str) -> str | None:
        env_name = self.env_vars.get(credential_id)
        if not env_name:
            return None
        value = os.getenv(env_name, "").strip()
        return value or None

    def has_key(self, credential_id: str) -> bool:
        return bool(self.get_key(credential_id))
