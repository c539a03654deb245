import asyncio

import httpx
import pytest

from geocar_client.application.use_cases.resolve_location import LocationResolver
from geocar_client.domain.errors import HttpError, ValidationError
from geocar_client.domain.value_objects.location import LatLng, ResolvedLocation
from geocar_client.infrastructure.adapters.google.google_maps import GoogleMapsClient

from tests.unit._fakes import Recorder, json_response, mock_http

BASE = "http://maps.test/api"


def _client(recorder, key="gkey"):
    return GoogleMapsClient(mock_http(recorder), key, base_url=BASE)


def test_geocode_sends_key_and_region():
    rec = Recorder(
        json_response(
            200,
            {
                "status": "OK",
                "results": [
                    {"formatted_address": "Presidente Prudente - SP", "geometry": {"location": {"lat": -22.12, "lng": -51.39}}}
                ],
            },
        )
    )

    found = asyncio.run(_client(rec).geocode("7WF8+MJG", region="br"))

    assert found == ResolvedLocation(-22.12, -51.39, "Presidente Prudente - SP")
    params = rec.requests[0].url.params
    assert rec.requests[0].url.path == "/api/geocode/json"
    assert params["key"] == "gkey"
    assert params["address"] == "7WF8+MJG"
    assert params["region"] == "br"


def test_zero_results_is_a_miss():
    rec = Recorder(json_response(200, {"status": "ZERO_RESULTS", "results": []}))
    assert asyncio.run(_client(rec).geocode("nowhere")) is None
    assert "region" not in rec.requests[0].url.params


def test_find_place_with_location_bias():
    rec = Recorder(
        json_response(
            200,
            {"status": "OK", "candidates": [{"name": "Sítio Santa Luzia", "geometry": {"location": {"lat": 1.5, "lng": 2.5}}}]},
        )
    )

    found = asyncio.run(_client(rec).find_place("Sítio Santa Luzia", bias=LatLng(-22.1, -51.4)))

    assert found == ResolvedLocation(1.5, 2.5, "Sítio Santa Luzia")
    params = rec.requests[0].url.params
    assert params["inputtype"] == "textquery"
    assert params["locationbias"] == "point:-22.1,-51.4"


def test_denied_request_raises():
    rec = Recorder(json_response(200, {"status": "REQUEST_DENIED", "error_message": "The provided API key is invalid."}))
    with pytest.raises(HttpError) as exc:
        asyncio.run(_client(rec).geocode("x"))
    assert exc.value.message == "The provided API key is invalid."


def test_missing_key_sends_nothing():
    rec = Recorder()
    with pytest.raises(ValidationError):
        asyncio.run(_client(rec, key="").geocode("x"))
    assert rec.requests == []


def test_autocomplete_and_details_share_session_token():
    rec = Recorder(
        json_response(200, {"status": "OK", "predictions": [{"place_id": "p1", "description": "Rua A"}, {"description": "no id"}]}),
        json_response(
            200,
            {"status": "OK", "result": {"name": "Rua A", "formatted_address": "Rua A, 10", "geometry": {"location": {"lat": 1, "lng": 2}}}},
        ),
    )
    client = _client(rec)

    predictions = asyncio.run(client.autocomplete("Rua A", "tok", country="BR"))
    details = asyncio.run(client.place_details(predictions[0].place_id, "tok"))

    assert [p.place_id for p in predictions] == ["p1"]
    assert details.address == "Rua A, 10"
    assert rec.requests[0].url.params["components"] == "country:br"
    assert [r.url.params["sessiontoken"] for r in rec.requests] == ["tok", "tok"]


def test_directions_decodes_overview_polyline():
    rec = Recorder(
        json_response(
            200,
            {
                "status": "OK",
                "routes": [
                    {
                        "summary": "SP-270",
                        "overview_polyline": {"points": "_p~iF~ps|U_ulLnnqC_mqNvxq`@"},
                        "legs": [
                            {"distance": {"value": 1000}, "duration": {"value": 60}},
                            {"distance": {"value": 500}, "duration": {"value": 30}},
                        ],
                    }
                ],
            },
        )
    )

    route = asyncio.run(_client(rec).directions(LatLng(38.5, -120.2), LatLng(43.252, -126.453)))

    assert (route.distance_m, route.duration_s, route.summary) == (1500, 90, "SP-270")
    assert len(route.points) == 3
    assert rec.requests[0].url.params["origin"] == "38.5,-120.2"


def test_html_body_is_http_error():
    rec = Recorder(httpx.Response(200, text="<html>captcha</html>", headers={"Content-Type": "text/html"}))
    with pytest.raises(HttpError):
        asyncio.run(_client(rec).geocode("x"))


def test_non_object_json_is_http_error():
    rec = Recorder(json_response(200, ["unexpected"]))
    with pytest.raises(HttpError):
        asyncio.run(_client(rec).find_place("x"))


def test_resolver_falls_back_when_geocoding_returns_html():
    paths = []

    def handler(request):
        paths.append(request.url.path)
        if request.url.path.endswith("/geocode/json"):
            return httpx.Response(200, text="<html>oops</html>", headers={"Content-Type": "text/html"})
        return json_response(
            200,
            {"status": "OK", "candidates": [{"name": "Sítio", "geometry": {"location": {"lat": -22.1, "lng": -51.4}}}]},
        )

    client = GoogleMapsClient(mock_http(handler), "gkey", base_url=BASE)

    found = asyncio.run(LocationResolver(client, client).resolve("7WF8+MJG"))

    assert found == ResolvedLocation(-22.1, -51.4, "Sítio")
    assert paths == ["/api/geocode/json", "/api/place/findplacefromtext/json"]
