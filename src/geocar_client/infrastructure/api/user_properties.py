from __future__ import annotations

import re

from geocar_client.application.dtos.user_property_dto import SearchByCpfResult, UserPropertyDTO
from geocar_client.domain.errors import ValidationError
from geocar_client.infrastructure.api.identity_client import IdentityApiClient


class UserPropertiesService:
    """CRUD over the user's linked properties (identity service, MySQL side)."""

    def __init__(self, api: IdentityApiClient) -> None:
        self.api = api

    async def list(self) -> list[UserPropertyDTO]:
        data = await self.api.get_json("/user-properties", auth_mode="access")
        return [UserPropertyDTO.from_api(p) for p in data or []]

    async def get(self, property_id: int) -> UserPropertyDTO:
        return UserPropertyDTO.from_api(await self.api.get_json(f"/user-properties/{property_id}", auth_mode="access"))

    async def mongo_details(self, property_id: int) -> UserPropertyDTO:
        data = await self.api.get_json(f"/user-properties/{property_id}/mongo-details", auth_mode="access")
        return UserPropertyDTO.from_api(data)

    async def update(
        self,
        property_id: int,
        *,
        display_name: str | None = None,
        registry_number: str | None = None,
    ) -> UserPropertyDTO:
        body = {}
        if display_name is not None:
            body["display_name"] = display_name
        if registry_number is not None:
            body["registry_number"] = registry_number
        if not body:
            raise ValidationError("Nothing to update")
        data = await self.api.put_json(f"/user-properties/{property_id}", body, auth_mode="access")
        return UserPropertyDTO.from_api(data)

    async def delete(self, property_id: int) -> str:
        """Soft delete. Returns the server message."""
        data = await self.api.delete(f"/user-properties/{property_id}", auth_mode="access")
        return (data or {}).get("message", "") if isinstance(data, dict) else str(data or "")

    async def search_by_cpf(self, cpf: str) -> SearchByCpfResult:
        digits = re.sub(r"\D", "", cpf)
        if len(digits) != 11:
            raise ValidationError("CPF must have 11 digits")
        data = await self.api.post_json("/user-properties/search-by-cpf", {"cpf": digits}, auth_mode="access")
        return SearchByCpfResult.from_api(data)
