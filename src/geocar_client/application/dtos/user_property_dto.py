from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Mapping

from geocar_client.application.dtos.spatial_feature_dto import feature_from_geojson
from geocar_client.domain.entities.spatial_feature import SpatialFeature


@dataclass(frozen=True)
class UserPropertyDTO:
    id: int
    mongo_property_id: str
    owner_user_id: int
    display_name: str
    registry_number: str | None = None
    is_active: bool = True
    created_at: str | None = None
    updated_at: str | None = None
    deleted_at: str | None = None
    mongo_details: dict[str, Any] | None = field(default=None, compare=False)

    @classmethod
    def from_api(cls, data: Mapping[str, Any]) -> "UserPropertyDTO":
        return cls(
            id=int(data["id"]),
            mongo_property_id=str(data.get("mongo_property_id") or ""),
            owner_user_id=int(data.get("owner_user_id") or 0),
            display_name=data.get("display_name") or "",
            registry_number=data.get("registry_number"),
            is_active=bool(data.get("is_active", 1)),
            created_at=data.get("created_at"),
            updated_at=data.get("updated_at"),
            deleted_at=data.get("deleted_at"),
            mongo_details=data.get("mongo_details"),
        )

    def feature(self) -> SpatialFeature | None:
        """Polygon of the linked CAR record, when mongo details were loaded."""
        if not self.mongo_details:
            return None
        return feature_from_geojson(self.mongo_details)


@dataclass(frozen=True)
class SearchByCpfResult:
    message: str
    properties: list[UserPropertyDTO]
    total: int

    @classmethod
    def from_api(cls, data: Mapping[str, Any]) -> "SearchByCpfResult":
        props = [UserPropertyDTO.from_api(p) for p in data.get("properties") or []]
        return cls(message=data.get("message") or "", properties=props, total=int(data.get("total", len(props))))
