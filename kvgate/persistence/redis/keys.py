from __future__ import annotations

from collections.abc import Iterable

from pydantic import BaseModel, Field


class KeyPrefixer(BaseModel):
    """Pure stateless helpers applying the configured key prefix to every key."""

    prefix: str = Field(default="")

    # ---- builders ---------------------------------------------------------
    def key(self, key: str) -> str:
        return f"{self.prefix}{key}"

    def keys(self, keys: Iterable[str]) -> list[str]:
        return [self.key(k) for k in keys]

    def pattern(self, pattern: str) -> str:
        # glob metacharacters inside the prefix itself must match literally
        escaped = "".join(f"\\{c}" if c in "*?[]\\" else c for c in self.prefix)
        return f"{escaped}{pattern}"

    # ---- readers ----------------------------------------------------------
    def strip(self, key: str) -> str:
        if self.prefix and key.startswith(self.prefix):
            return key[len(self.prefix) :]
        return key
