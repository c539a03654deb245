import asyncio
import json

import pytest

from geocar_client.domain.errors import ValidationError
from geocar_client.infrastructure.api.identity_client import IdentityApiClient
from geocar_client.infrastructure.api.user_properties import UserPropertiesService

from tests.unit._fakes import Recorder, json_response, make_tokens, mock_http

PROPERTY = {
    "id": 3,
    "mongo_property_id": "665f1c",
    "owner_user_id": 7,
    "display_name": "Sítio Santa Luzia",
    "registry_number": "SP-3541406-ABC",
    "is_active": 1,
    "created_at": "2025-01-01T00:00:00Z",
}


def _service(*responses):
    rec = Recorder(*responses)
    api = IdentityApiClient(mock_http(rec), make_tokens(access_token="acc"), "http://identity.test/api/v1")
    return UserPropertiesService(api), rec


def test_list_parses_rows():
    svc, rec = _service(json_response(200, [PROPERTY]))

    rows = asyncio.run(svc.list())

    assert rows[0].display_name == "Sítio Santa Luzia"
    assert rows[0].is_active is True
    assert rec.requests[0].url.path == "/api/v1/user-properties"
    assert rec.requests[0].headers["authorization"] == "Bearer acc"


def test_mongo_details_exposes_feature():
    details = {"_id": "665f1c", "geometry": {"type": "Polygon", "coordinates": [[[0, 0], [2, 0], [2, 2], [0, 2]]]}}
    svc, rec = _service(json_response(200, {**PROPERTY, "mongo_details": details}))

    row = asyncio.run(svc.mongo_details(3))

    assert rec.requests[0].url.path.endswith("/user-properties/3/mongo-details")
    feature = row.feature()
    assert feature.id == "665f1c"
    assert (feature.center.lat, feature.center.lng) == (1.0, 1.0)


def test_update_sends_only_given_fields():
    svc, rec = _service(json_response(200, {**PROPERTY, "display_name": "Novo nome"}))

    row = asyncio.run(svc.update(3, display_name="Novo nome"))

    assert row.display_name == "Novo nome"
    assert rec.requests[0].method == "PUT"
    assert json.loads(rec.requests[0].content) == {"display_name": "Novo nome"}


def test_update_without_fields_is_rejected():
    svc, rec = _service()
    with pytest.raises(ValidationError):
        asyncio.run(svc.update(3))
    assert rec.requests == []


def test_delete_returns_message():
    svc, _ = _service(json_response(200, {"message": "Propriedade removida"}))
    assert asyncio.run(svc.delete(3)) == "Propriedade removida"


def test_search_by_cpf():
    svc, rec = _service(json_response(200, {"message": "ok", "properties": [PROPERTY], "total": 1}))

    result = asyncio.run(svc.search_by_cpf("123.456.789-01"))

    assert result.total == 1
    assert result.properties[0].id == 3
    assert json.loads(rec.requests[0].content) == {"cpf": "12345678901"}


def test_search_by_cpf_validates_digits():
    svc, rec = _service()
    with pytest.raises(ValidationError):
        asyncio.run(svc.search_by_cpf("123"))
    assert rec.requests == []
