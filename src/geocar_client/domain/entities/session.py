from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from geocar_client.domain.entities.profile import Profile


class FlowKind(str, Enum):
    LOGIN = "login"
    REGISTER = "register"
    PRE_REGISTER = "pre_register"
    CHANGE_PASSWORD = "change_password"


class AuthState(str, Enum):
    ANONYMOUS = "anonymous"
    AWAITING_VERIFICATION = "awaiting_verification"
    AUTHENTICATED = "authenticated"


@dataclass(frozen=True)
class Session:
    """Snapshot of what is persisted in the token store.

    ``geo_api_key`` always mirrors ``profile.api_key`` at save time.
    """

    access_token: str | None = None
    temp_token: str | None = None
    profile: Profile | None = None
    geo_api_key: str | None = None

    @property
    def is_consistent(self) -> bool:
        # a profile left behind by an interrupted logout is not a session
        return self.profile is None or self.access_token is not None


@dataclass(frozen=True)
class SessionState:
    state: AuthState = AuthState.ANONYMOUS
    flow: FlowKind | None = None
    profile: Profile | None = None

    @classmethod
    def anonymous(cls) -> "SessionState":
        return cls()

    @classmethod
    def awaiting(cls, flow: FlowKind) -> "SessionState":
        return cls(AuthState.AWAITING_VERIFICATION, flow=flow)

    @classmethod
    def authenticated(cls, profile: Profile | None) -> "SessionState":
        return cls(AuthState.AUTHENTICATED, profile=profile)
