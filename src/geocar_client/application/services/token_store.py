from __future__ import annotations

import json
import logging

from geocar_client.application.ports.key_value_store_port import KeyValueStorePort
from geocar_client.domain.entities.profile import Profile
from geocar_client.domain.entities.session import Session

logger = logging.getLogger(__name__)

ACCESS_TOKEN = "access_token"
TEMP_TOKEN = "temp_token"
PROFILE = "user_profile"
GEO_API_KEY = "secondary_api_key"

STORAGE_KEYS = (ACCESS_TOKEN, TEMP_TOKEN, PROFILE, GEO_API_KEY)


class SecureTokenStore:
    """Typed access to the four persisted session keys.

    No business logic lives here; the geo key is written only as a side effect
    of ``save_profile`` so it can never drift from the stored profile.
    """

    def __init__(self, kv: KeyValueStorePort) -> None:
        self.kv = kv

    # ---------- Tokens ----------
    def get_access_token(self) -> str | None:
        return self.kv.get(ACCESS_TOKEN)

    def set_access_token(self, token: str) -> None:
        self.kv.set(ACCESS_TOKEN, token)

    def get_temp_token(self) -> str | None:
        return self.kv.get(TEMP_TOKEN)

    def set_temp_token(self, token: str) -> None:
        self.kv.set(TEMP_TOKEN, token)

    def clear_temp_token(self) -> None:
        self.kv.delete(TEMP_TOKEN)

    # ---------- Profile / geo key ----------
    def load_profile(self) -> Profile | None:
        raw = self.kv.get(PROFILE)
        if not raw:
            return None
        try:
            return Profile.from_dict(json.loads(raw))
        except (ValueError, TypeError) as e:
            logger.warning("Discarding unreadable stored profile: %s", e)
            self.kv.delete(PROFILE)
            return None

    def save_profile(self, profile: Profile) -> None:
        self.kv.set(PROFILE, json.dumps(profile.to_dict()))
        if profile.api_key:
            self.kv.set(GEO_API_KEY, profile.api_key)
        else:
            self.kv.delete(GEO_API_KEY)

    def get_geo_api_key(self) -> str | None:
        return self.kv.get(GEO_API_KEY)

    # ---------- Whole session ----------
    def snapshot(self) -> Session:
        return Session(
            access_token=self.get_access_token(),
            temp_token=self.get_temp_token(),
            profile=self.load_profile(),
            geo_api_key=self.get_geo_api_key(),
        )

    def clear_all(self) -> None:
        # four independent deletes, no cross-key transaction
        for key in STORAGE_KEYS:
            self.kv.delete(key)
