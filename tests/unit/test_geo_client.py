import asyncio

import pytest

from geocar_client.domain.errors import AuthExpired, HttpError, MissingCredential
from geocar_client.infrastructure.api.geo_client import GeoApiClient

from tests.unit._fakes import FakeHydrator, Recorder, json_response, make_tokens, mock_http

BASE = "http://geo.test/api/v1"


def _client(recorder, tokens, hydrator):
    return GeoApiClient(mock_http(recorder), tokens, hydrator, BASE)


def test_missing_key_after_hydrate_sends_nothing():
    rec = Recorder()
    tokens = make_tokens(access_token="acc")
    hydrator = FakeHydrator(tokens, [None])

    with pytest.raises(MissingCredential):
        asyncio.run(_client(rec, tokens, hydrator).fetch_viewport("0,0,1,1"))

    assert hydrator.called == 1
    assert rec.requests == []


def test_missing_key_is_hydrated_before_first_call():
    rec = Recorder(json_response(200, {"items": []}))
    tokens = make_tokens(access_token="acc")
    hydrator = FakeHydrator(tokens, ["k1"])

    asyncio.run(_client(rec, tokens, hydrator).fetch_viewport("0,0,1,1"))

    assert hydrator.called == 1
    assert rec.requests[0].headers["x-api-key"] == "k1"


def test_viewport_query_params():
    rec = Recorder(json_response(200, {"items": [], "total": 0}))
    tokens = make_tokens(secondary_api_key="k1")

    data = asyncio.run(_client(rec, tokens, FakeHydrator(tokens, [])).fetch_viewport("-52,-22,-50,-21", limit=50))

    req = rec.requests[0]
    assert data == {"items": [], "total": 0}
    assert req.url.path == "/api/v1/imoveis/viewport"
    assert req.url.params["bbox"] == "-52,-22,-50,-21"
    assert req.url.params["limit"] == "50"
    assert req.url.params["mode"] == "intersects"
    assert "authorization" not in req.headers


def test_near_uses_radius_param():
    rec = Recorder(json_response(200, {"items": []}))
    tokens = make_tokens(secondary_api_key="k1")
    asyncio.run(_client(rec, tokens, FakeHydrator(tokens, [])).fetch_near(-21.5, -51.0, radius_km=2))
    assert rec.requests[0].url.params["radiusKm"] == "2"


def test_401_rehydrates_and_resends_once():
    rec = Recorder(json_response(401, {}), json_response(200, {"items": [1]}))
    tokens = make_tokens(access_token="acc", secondary_api_key="k1")
    hydrator = FakeHydrator(tokens, ["k2"])

    data = asyncio.run(_client(rec, tokens, hydrator).fetch_viewport("0,0,1,1"))

    assert data == {"items": [1]}
    assert hydrator.called == 1
    assert [r.headers["x-api-key"] for r in rec.requests] == ["k1", "k2"]


def test_second_auth_failure_is_terminal():
    rec = Recorder(json_response(403, {}), json_response(403, {"message": "chave revogada"}))
    tokens = make_tokens(access_token="acc", secondary_api_key="k1")
    hydrator = FakeHydrator(tokens, ["k2"])

    with pytest.raises(AuthExpired) as exc:
        asyncio.run(_client(rec, tokens, hydrator).fetch_by_id("abc"))

    assert exc.value.status == 403
    assert exc.value.message == "chave revogada"
    assert len(rec.requests) == 2
    assert hydrator.called == 1


def test_other_errors_are_not_retried():
    rec = Recorder(json_response(404, {"message": "Imóvel não encontrado"}))
    tokens = make_tokens(secondary_api_key="k1")
    hydrator = FakeHydrator(tokens, [])

    with pytest.raises(HttpError) as exc:
        asyncio.run(_client(rec, tokens, hydrator).fetch_by_id("x y"))

    assert exc.value.status == 404
    assert hydrator.called == 0
    assert rec.requests[0].url.raw_path.endswith(b"/imoveis/x%20y")
