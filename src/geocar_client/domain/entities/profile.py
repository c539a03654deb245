from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Any, Mapping


@dataclass(frozen=True)
class Profile:
    """User profile as returned by the identity service's ``/auth/me``."""

    id: str
    name: str
    email: str
    role: str
    cpf: str | None = None
    api_key: str | None = None
    scope: str | None = None
    issued_at: int | None = None
    expires_at: int | None = None

    @classmethod
    def from_me_response(cls, data: Mapping[str, Any]) -> "Profile":
        return cls(
            id=str(data.get("id", "")),
            name=data.get("name") or "",
            email=data.get("email") or "",
            role=data.get("system_role") or data.get("role") or "",
            cpf=data.get("cpf"),
            api_key=data.get("api_key") or None,
            scope=data.get("scope"),
            issued_at=data.get("iat"),
            expires_at=data.get("exp"),
        )

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Profile":
        return cls(**{k: data.get(k) for k in cls.__dataclass_fields__ if k in data})
