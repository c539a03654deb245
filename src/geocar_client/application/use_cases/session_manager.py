from __future__ import annotations

import logging
import re
from typing import Any

from geocar_client.application.ports.identity_api_port import IdentityApiPort
from geocar_client.application.services.observable import ObservableStore
from geocar_client.application.services.token_store import SecureTokenStore
from geocar_client.domain.entities.profile import Profile
from geocar_client.domain.entities.session import AuthState, FlowKind, SessionState
from geocar_client.domain.errors import (
    ExpiredChallenge,
    GeoCarError,
    HttpError,
    InvalidCode,
    InvalidCredentials,
    MissingCredential,
    ValidationError,
)

logger = logging.getLogger(__name__)

MIN_REGISTER_PASSWORD = 6
MIN_CHANGE_PASSWORD = 8


def _normalize_email(email: str) -> str:
    return email.strip().lower()


def _check_passwords(password: str, confirm: str, min_length: int) -> None:
    if not password or not confirm:
        raise ValidationError("Password and confirmation are required")
    if password != confirm:
        raise ValidationError("Passwords do not match")
    if len(password) < min_length:
        raise ValidationError(f"Password must have at least {min_length} characters")


def _challenge_error(e: HttpError) -> HttpError:
    """Maps a failed verify call onto the verification taxonomy."""
    if e.status in (401, 403):
        return ExpiredChallenge(e.status, e.message)
    if e.status in (400, 404, 409, 422):
        return InvalidCode(e.status, e.message)
    return e


def _token_from(data: Any, *names: str) -> str | None:
    if not isinstance(data, dict):
        return None
    for name in names:
        if data.get(name):
            return str(data[name])
    return None


class SessionManager:
    """Owns the authentication state machine.

    Anonymous -> AwaitingVerification(flow) -> Authenticated, and back to
    Anonymous on logout, abandon, an expired challenge or an unrecoverable
    401 reported by the identity client. Every transition is published
    through the injected observable store.
    """

    def __init__(
        self,
        api: IdentityApiPort,
        tokens: SecureTokenStore,
        *,
        state: ObservableStore[SessionState] | None = None,
    ) -> None:
        self.api = api
        self.tokens = tokens
        self.state = state or ObservableStore(SessionState.anonymous())

    def _log(self, msg: str) -> None:
        logger.info("[SessionManager] %s", msg)

    @property
    def current(self) -> SessionState:
        return self.state.value

    # ---------- Lifecycle ----------
    def restore(self) -> SessionState:
        """Rebuilds the state from the token store at process start."""
        snap = self.tokens.snapshot()
        if not snap.is_consistent:
            self._log("Stored profile without access token, clearing partial session")
            self.tokens.clear_all()
            self.state.set(SessionState.anonymous())
        elif snap.access_token:
            self.state.set(SessionState.authenticated(snap.profile))
        else:
            if snap.temp_token:
                # ceremonies do not survive a restart
                self.tokens.clear_temp_token()
            self.state.set(SessionState.anonymous())
        return self.current

    def abandon(self) -> None:
        """User left a verification ceremony."""
        if self.current.state is AuthState.AWAITING_VERIFICATION:
            self._log(f"Abandoning {self.current.flow} verification")
            self.tokens.clear_temp_token()
            if self.current.flow is FlowKind.CHANGE_PASSWORD:
                self.state.set(SessionState.authenticated(self.tokens.load_profile()))
            else:
                self.state.set(SessionState.anonymous())

    def handle_auth_expired(self) -> None:
        """Callback for the identity client once it has cleared the store."""
        self._log("Identity service rejected the session")
        self.state.set(SessionState.anonymous())

    def _begin(self, flow: FlowKind, temp_token: str | None) -> None:
        if temp_token:
            self.tokens.set_temp_token(temp_token)
        self.state.set(SessionState.awaiting(flow))

    def _require_challenge(self, flow: FlowKind) -> None:
        if not self.tokens.get_temp_token():
            self.state.set(SessionState.anonymous())
            raise ExpiredChallenge(401, f"No pending {flow.value} verification, start again")

    async def _finish(self, access_token: str) -> Profile:
        self.tokens.set_access_token(access_token)
        self.tokens.clear_temp_token()
        return await self.hydrate()

    # ---------- Login ----------
    async def login_start(self, email: str, password: str) -> str:
        if not email or not password:
            raise ValidationError("Email and password are required")
        self.tokens.clear_all()
        self.state.set(SessionState.anonymous())
        try:
            data = await self.api.request(
                "/auth/login",
                "POST",
                {"email": _normalize_email(email), "password": password},
                auth_mode="none",
            )
        except HttpError as e:
            if e.status in (400, 401, 403):
                raise InvalidCredentials(e.status, e.message) from e
            raise
        token = _token_from(data, "login_token", "token")
        if not token:
            raise HttpError(502, "Login token missing from response")
        self._begin(FlowKind.LOGIN, token)
        return token

    async def login_verify(self, email: str, code: str) -> Profile:
        if not code:
            raise ValidationError("Verification code is required")
        self._require_challenge(FlowKind.LOGIN)
        try:
            data = await self.api.request(
                "/auth/finalize-login",
                "POST",
                {"email": _normalize_email(email), "code": code.strip()},
                auth_mode="temp",
            )
        except HttpError as e:
            mapped = _challenge_error(e)
            if isinstance(mapped, ExpiredChallenge):
                self.tokens.clear_temp_token()
                self.state.set(SessionState.anonymous())
            raise mapped from e
        token = _token_from(data, "token", "access_token")
        if not token:
            raise HttpError(502, "Access token missing from response")
        return await self._finish(token)

    async def guest_login(self) -> Profile:
        self.tokens.clear_all()
        data = await self.api.request("/auth/guest-login", "POST", {}, auth_mode="none")
        token = _token_from(data, "token")
        if not token:
            raise HttpError(502, "Token missing from guest login response")
        return await self._finish(token)

    # ---------- Registration ----------
    async def register_start(self, name: str, email: str, password: str, confirm_password: str) -> str:
        if not name.strip() or not email:
            raise ValidationError("Name and email are required")
        _check_passwords(password, confirm_password, MIN_REGISTER_PASSWORD)
        self.tokens.clear_all()
        self.state.set(SessionState.anonymous())
        data = await self.api.request(
            "/auth/register",
            "POST",
            {"name": name.strip(), "email": _normalize_email(email), "password": password},
            auth_mode="none",
        )
        token = _token_from(data, "register_token", "token")
        if not token:
            raise HttpError(502, "Register token missing from response")
        self._begin(FlowKind.REGISTER, token)
        return token

    async def register_verify(self, email: str, code: str) -> Profile:
        if not code:
            raise ValidationError("Verification code is required")
        self._require_challenge(FlowKind.REGISTER)
        try:
            data = await self.api.request(
                "/auth/finalize-register",
                "POST",
                {"email": _normalize_email(email), "code": code.strip()},
                auth_mode="temp",
            )
        except HttpError as e:
            mapped = _challenge_error(e)
            if isinstance(mapped, ExpiredChallenge):
                self.tokens.clear_temp_token()
                self.state.set(SessionState.anonymous())
            raise mapped from e
        token = _token_from(data, "token", "access_token")
        if not token:
            raise HttpError(502, "Access token missing from response")
        return await self._finish(token)

    async def pre_register_start(
        self, name: str, email: str, cpf: str, password: str, confirm_password: str
    ) -> None:
        """CPF-based pre-registration: the code activates the account, no token is issued."""
        if not name.strip() or not email or not cpf:
            raise ValidationError("Name, email and CPF are required")
        _check_passwords(password, confirm_password, MIN_REGISTER_PASSWORD)
        digits = re.sub(r"\D", "", cpf)
        if len(digits) != 11:
            raise ValidationError("CPF must have 11 digits")
        await self.api.request(
            "/auth/start-register",
            "POST",
            {
                "name": name.strip(),
                "email": _normalize_email(email),
                "cpf": digits,
                "new_password": password,
                "confirm_password": confirm_password,
            },
            auth_mode="none",
        )
        self._begin(FlowKind.PRE_REGISTER, None)

    async def pre_register_verify(self, email: str, code: str) -> None:
        if not code:
            raise ValidationError("Verification code is required")
        try:
            await self.api.request(
                "/auth/register",
                "POST",
                {"email": _normalize_email(email), "code": code.strip()},
                auth_mode="none",
            )
        except HttpError as e:
            raise _challenge_error(e) from e
        self._log("Account activated, user must log in")
        self.state.set(SessionState.anonymous())

    # ---------- Password change ----------
    async def change_password_start(self, current_password: str, new_password: str, confirm_password: str) -> None:
        if not current_password:
            raise ValidationError("Current password is required")
        _check_passwords(new_password, confirm_password, MIN_CHANGE_PASSWORD)
        if not self.tokens.get_access_token():
            raise MissingCredential("Not logged in")
        await self.api.request(
            "/auth/start-change-password",
            "POST",
            {
                "current_password": current_password,
                "new_password": new_password,
                "confirm_password": confirm_password,
            },
            auth_mode="access",
        )
        self.state.set(SessionState(AuthState.AWAITING_VERIFICATION, FlowKind.CHANGE_PASSWORD, self.tokens.load_profile()))

    async def change_password_verify(
        self, current_password: str, new_password: str, confirm_password: str, code: str
    ) -> None:
        if not code:
            raise ValidationError("Verification code is required")
        _check_passwords(new_password, confirm_password, MIN_CHANGE_PASSWORD)
        try:
            await self.api.request(
                "/auth/change-password",
                "POST",
                {
                    "current_password": current_password,
                    "new_password": new_password,
                    "confirm_password": confirm_password,
                    "code": code.strip(),
                },
                auth_mode="access",
            )
        except HttpError as e:
            if e.status in (400, 404, 409, 422):
                raise InvalidCode(e.status, e.message) from e
            raise
        self.state.set(SessionState.authenticated(self.tokens.load_profile()))

    # ---------- Profile ----------
    async def hydrate(self) -> Profile:
        """Refreshes the stored profile (and derived geo key) from ``/auth/me``."""
        if not self.tokens.get_access_token():
            raise MissingCredential("No access token to hydrate the session with")
        data = await self.api.request("/auth/me", "GET", auth_mode="access")
        if not isinstance(data, dict):
            raise HttpError(502, "Unexpected /auth/me payload")
        profile = Profile.from_me_response(data)
        self.tokens.save_profile(profile)
        self.state.set(SessionState.authenticated(profile))
        return profile

    async def logout(self) -> None:
        """Best-effort remote logout; local keys are always cleared."""
        try:
            if self.tokens.get_access_token():
                await self.api.request("/auth/logout", "POST", {}, auth_mode="access")
        except GeoCarError as e:
            logger.warning("[SessionManager] Remote logout failed, clearing locally: %s", e)
        finally:
            self.tokens.clear_all()
            self.state.set(SessionState.anonymous())
