import asyncio

import pytest

from geocar_client.application.services.token_store import PROFILE
from geocar_client.application.use_cases.session_manager import SessionManager
from geocar_client.domain.entities.profile import Profile
from geocar_client.domain.entities.session import AuthState, FlowKind, SessionState
from geocar_client.domain.errors import (
    ExpiredChallenge,
    HttpError,
    InvalidCode,
    InvalidCredentials,
    MissingCredential,
    NetworkError,
    ValidationError,
)

from tests.unit._fakes import ME_PAYLOAD, FakeIdentityApi, http_error, make_tokens


def _manager(routes=None, **initial):
    api = FakeIdentityApi(routes)
    tokens = make_tokens(**initial)
    return SessionManager(api, tokens), api, tokens


def test_login_flow_reaches_authenticated():
    mgr, api, tokens = _manager(
        {
            "/auth/login": {"login_token": "tmp-1"},
            "/auth/finalize-login": {"token": "acc-1"},
            "/auth/me": ME_PAYLOAD,
        }
    )
    seen = []
    mgr.state.subscribe(lambda s: seen.append(s.state))

    token = asyncio.run(mgr.login_start("  Maria@Example.com ", "secret"))
    assert token == "tmp-1"
    assert mgr.current.state is AuthState.AWAITING_VERIFICATION
    assert mgr.current.flow is FlowKind.LOGIN
    assert tokens.get_temp_token() == "tmp-1"

    profile = asyncio.run(mgr.login_verify("maria@example.com", " 123456 "))

    assert profile.name == "Maria Souza"
    assert mgr.current.state is AuthState.AUTHENTICATED
    assert tokens.get_access_token() == "acc-1"
    assert tokens.get_temp_token() is None
    assert tokens.get_geo_api_key() == "geo-key-1"
    assert api.calls[0] == ("/auth/login", "POST", {"email": "maria@example.com", "password": "secret"}, "none")
    assert api.calls[1] == ("/auth/finalize-login", "POST", {"email": "maria@example.com", "code": "123456"}, "temp")
    assert api.calls[2][3] == "access"
    assert seen == [AuthState.AWAITING_VERIFICATION, AuthState.AUTHENTICATED]


def test_login_start_wipes_previous_session():
    mgr, _, tokens = _manager({"/auth/login": {"login_token": "t"}}, access_token="old", secondary_api_key="g")
    asyncio.run(mgr.login_start("a@b.c", "pw"))
    assert tokens.get_access_token() is None
    assert tokens.get_geo_api_key() is None


def test_wrong_password_is_invalid_credentials():
    mgr, _, tokens = _manager({"/auth/login": http_error(401, "Credenciais inválidas")})
    with pytest.raises(InvalidCredentials):
        asyncio.run(mgr.login_start("a@b.c", "bad"))
    assert mgr.current.state is AuthState.ANONYMOUS
    assert tokens.get_temp_token() is None


def test_login_start_requires_fields():
    mgr, api, _ = _manager()
    with pytest.raises(ValidationError):
        asyncio.run(mgr.login_start("", "pw"))
    assert api.calls == []


def test_verify_without_challenge_is_expired():
    mgr, api, _ = _manager()
    with pytest.raises(ExpiredChallenge):
        asyncio.run(mgr.login_verify("a@b.c", "123456"))
    assert api.calls == []
    assert mgr.current.state is AuthState.ANONYMOUS


def test_wrong_code_keeps_ceremony_open():
    mgr, _, tokens = _manager({"/auth/login": {"login_token": "tmp"}, "/auth/finalize-login": http_error(400)})
    asyncio.run(mgr.login_start("a@b.c", "pw"))

    with pytest.raises(InvalidCode):
        asyncio.run(mgr.login_verify("a@b.c", "000000"))

    assert tokens.get_temp_token() == "tmp"
    assert mgr.current.state is AuthState.AWAITING_VERIFICATION


def test_stale_temp_token_ends_ceremony():
    mgr, _, tokens = _manager({"/auth/login": {"login_token": "tmp"}, "/auth/finalize-login": http_error(401)})
    asyncio.run(mgr.login_start("a@b.c", "pw"))

    with pytest.raises(ExpiredChallenge):
        asyncio.run(mgr.login_verify("a@b.c", "123456"))

    assert tokens.get_temp_token() is None
    assert mgr.current.state is AuthState.ANONYMOUS


def test_missing_login_token_is_server_error():
    mgr, _, _ = _manager({"/auth/login": {}})
    with pytest.raises(HttpError) as exc:
        asyncio.run(mgr.login_start("a@b.c", "pw"))
    assert exc.value.status == 502


def test_register_flow():
    mgr, api, tokens = _manager(
        {
            "/auth/register": {"register_token": "reg"},
            "/auth/finalize-register": {"token": "acc"},
            "/auth/me": ME_PAYLOAD,
        }
    )
    asyncio.run(mgr.register_start("Maria", "m@example.com", "segredo", "segredo"))
    assert mgr.current.flow is FlowKind.REGISTER
    asyncio.run(mgr.register_verify("m@example.com", "111111"))

    assert api.paths() == ["/auth/register", "/auth/finalize-register", "/auth/me"]
    assert tokens.get_access_token() == "acc"
    assert mgr.current.state is AuthState.AUTHENTICATED


@pytest.mark.parametrize(
    "password,confirm",
    [("abc", "abc"), ("segredo", "segredx"), ("", "")],
)
def test_register_password_rules(password, confirm):
    mgr, api, _ = _manager()
    with pytest.raises(ValidationError):
        asyncio.run(mgr.register_start("Maria", "m@example.com", password, confirm))
    assert api.calls == []


def test_pre_register_by_cpf_ends_anonymous():
    mgr, api, _ = _manager({"/auth/start-register": {"message": "ok"}, "/auth/register": {"message": "ativado"}})

    asyncio.run(mgr.pre_register_start("Maria", "m@example.com", "123.456.789-01", "segredo", "segredo"))
    assert mgr.current.flow is FlowKind.PRE_REGISTER
    assert api.calls[0][2]["cpf"] == "12345678901"

    asyncio.run(mgr.pre_register_verify("m@example.com", "222222"))
    assert mgr.current.state is AuthState.ANONYMOUS
    assert api.calls[1] == ("/auth/register", "POST", {"email": "m@example.com", "code": "222222"}, "none")


def test_pre_register_rejects_short_cpf():
    mgr, _, _ = _manager()
    with pytest.raises(ValidationError):
        asyncio.run(mgr.pre_register_start("Maria", "m@example.com", "123", "segredo", "segredo"))


def test_change_password_returns_to_authenticated():
    mgr, api, tokens = _manager(
        {"/auth/start-change-password": {}, "/auth/change-password": {"message": "ok"}},
        access_token="acc",
    )
    tokens.save_profile(Profile.from_me_response(ME_PAYLOAD))

    asyncio.run(mgr.change_password_start("velha123", "novasenha", "novasenha"))
    assert mgr.current.flow is FlowKind.CHANGE_PASSWORD
    asyncio.run(mgr.change_password_verify("velha123", "novasenha", "novasenha", "333333"))

    assert mgr.current.state is AuthState.AUTHENTICATED
    assert mgr.current.profile.name == "Maria Souza"
    assert [c[3] for c in api.calls] == ["access", "access"]


def test_change_password_needs_login():
    mgr, _, _ = _manager()
    with pytest.raises(MissingCredential):
        asyncio.run(mgr.change_password_start("velha123", "novasenha", "novasenha"))


def test_guest_login():
    mgr, api, tokens = _manager({"/auth/guest-login": {"token": "guest"}, "/auth/me": {**ME_PAYLOAD, "system_role": "guest"}})
    profile = asyncio.run(mgr.guest_login())
    assert profile.role == "guest"
    assert tokens.get_access_token() == "guest"
    assert api.calls[0][3] == "none"


def test_hydrate_without_token():
    mgr, api, _ = _manager()
    with pytest.raises(MissingCredential):
        asyncio.run(mgr.hydrate())
    assert api.calls == []


def test_logout_clears_even_when_remote_fails():
    mgr, _, tokens = _manager({"/auth/logout": NetworkError("offline")}, access_token="acc", secondary_api_key="g")
    mgr.restore()
    assert mgr.current.state is AuthState.AUTHENTICATED

    asyncio.run(mgr.logout())

    assert tokens.get_access_token() is None
    assert tokens.get_geo_api_key() is None
    assert mgr.current.state is AuthState.ANONYMOUS


def test_restore_discards_partial_session():
    mgr, _, tokens = _manager()
    tokens.save_profile(Profile.from_me_response(ME_PAYLOAD))

    assert mgr.restore().state is AuthState.ANONYMOUS
    assert tokens.kv.get(PROFILE) is None
    assert tokens.get_geo_api_key() is None


def test_restore_drops_pending_ceremony():
    mgr, _, tokens = _manager(temp_token="tmp")
    assert mgr.restore().state is AuthState.ANONYMOUS
    assert tokens.get_temp_token() is None


def test_abandon_clears_temp_token():
    mgr, _, tokens = _manager({"/auth/login": {"login_token": "tmp"}})
    asyncio.run(mgr.login_start("a@b.c", "pw"))
    mgr.abandon()
    assert tokens.get_temp_token() is None
    assert mgr.current.state is AuthState.ANONYMOUS


def test_auth_expired_callback_and_unsubscribe():
    mgr, _, _ = _manager(access_token="acc")
    mgr.restore()
    seen = []
    unsubscribe = mgr.state.subscribe(seen.append)

    mgr.handle_auth_expired()
    unsubscribe()
    mgr.restore()

    assert [s.state for s in seen] == [AuthState.ANONYMOUS]


def test_failing_listener_does_not_block_others():
    mgr, _, _ = _manager()
    seen = []

    def broken(_):
        raise RuntimeError("boom")

    mgr.state.subscribe(broken)
    mgr.state.subscribe(seen.append)
    mgr.handle_auth_expired()
    mgr.restore()
    mgr.state.set(SessionState.awaiting(FlowKind.LOGIN))

    assert len(seen) == 1
