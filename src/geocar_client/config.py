from __future__ import annotations

import os
from dataclasses import dataclass

from dotenv import load_dotenv

# Load .env if present
load_dotenv()


@dataclass(frozen=True)
class Settings:
    identity_api_base_url: str = os.getenv("IDENTITY_API_BASE_URL", "http://localhost:5000/api/v1")
    geo_api_base_url: str = os.getenv("GEO_API_BASE_URL", "http://localhost:3001/api/v1")
    google_maps_api_key: str = os.getenv("GOOGLE_MAPS_API_KEY", "")
    google_maps_base_url: str = os.getenv("GOOGLE_MAPS_BASE_URL", "https://maps.googleapis.com/maps/api")
    http_timeout: float = float(os.getenv("HTTP_TIMEOUT", "30"))
    http_max_attempts: int = int(os.getenv("HTTP_MAX_ATTEMPTS", "3"))
    # empty path keeps tokens in memory only
    token_store_path: str = os.getenv("TOKEN_STORE_PATH", ".geocar_tokens.sqlite")
    viewport_debounce_ms: int = int(os.getenv("VIEWPORT_DEBOUNCE_MS", "350"))
    viewport_limit: int = int(os.getenv("VIEWPORT_LIMIT", "200"))
    viewport_mode: str = os.getenv("VIEWPORT_MODE", "intersects")
    default_geocode_region: str = os.getenv("DEFAULT_GEOCODE_REGION", "br")


settings = Settings()
