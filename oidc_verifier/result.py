"""Read-only result of a successful verification."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any


@dataclass(frozen=True)
class VerifiedToken:
    """
    Claims of a token that passed structure, signature and claim checks.

    The claims mapping is read-only; use ``to_dict()`` for a mutable copy.
    """

    claims: Mapping[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        object.__setattr__(self, "claims", MappingProxyType(dict(self.claims)))

    def __getitem__(self, name: str) -> Any:
        return self.claims[name]

    def __contains__(self, name: object) -> bool:
        return name in self.claims

    def get(self, name: str, default: Any = None) -> Any:
        return self.claims.get(name, default)

    @property
    def subject(self) -> str | None:
        sub = self.claims.get("sub")
        return str(sub) if sub is not None else None

    def to_dict(self) -> dict[str, Any]:
        """Return a JSON-serializable copy of the claims."""
        return dict(self.claims)
