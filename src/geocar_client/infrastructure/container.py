from __future__ import annotations

from dataclasses import dataclass

from geocar_client.application.ports.http_client_port import HttpClientPort
from geocar_client.application.ports.key_value_store_port import KeyValueStorePort
from geocar_client.application.services.token_store import SecureTokenStore
from geocar_client.application.use_cases.load_viewport import ViewportLoader
from geocar_client.application.use_cases.resolve_location import LocationResolver
from geocar_client.application.use_cases.session_manager import SessionManager
from geocar_client.config import Settings, settings as default_settings
from geocar_client.infrastructure.adapters.google.google_maps import GoogleMapsClient
from geocar_client.infrastructure.adapters.http.httpx_client import HttpxClient
from geocar_client.infrastructure.adapters.store.memory_store import InMemoryKeyValueStore
from geocar_client.infrastructure.adapters.store.sqlite_store import SQLiteKeyValueStore
from geocar_client.infrastructure.api.geo_client import GeoApiClient
from geocar_client.infrastructure.api.identity_client import IdentityApiClient
from geocar_client.infrastructure.api.user_properties import UserPropertiesService


@dataclass
class Container:
    settings: Settings
    http: HttpClientPort
    tokens: SecureTokenStore
    identity: IdentityApiClient
    session: SessionManager
    geo: GeoApiClient
    google: GoogleMapsClient
    resolver: LocationResolver
    viewport: ViewportLoader
    properties: UserPropertiesService

    async def aclose(self) -> None:
        await self.http.aclose()


def build_container(
    cfg: Settings | None = None,
    *,
    store: KeyValueStorePort | None = None,
    http: HttpClientPort | None = None,
) -> Container:
    """Wires every component. Tests inject a memory store and a mock-transport client."""
    cfg = cfg or default_settings
    # one shared HttpxClient, identity, geo and Google reuse its pool
    http = http or HttpxClient(timeout=cfg.http_timeout, max_attempts=cfg.http_max_attempts)
    if store is None:
        store = SQLiteKeyValueStore(cfg.token_store_path) if cfg.token_store_path else InMemoryKeyValueStore()
    tokens = SecureTokenStore(store)

    identity = IdentityApiClient(http, tokens, cfg.identity_api_base_url)
    session = SessionManager(identity, tokens)
    identity.on_auth_expired = session.handle_auth_expired
    session.restore()

    geo = GeoApiClient(http, tokens, session, cfg.geo_api_base_url)
    google = GoogleMapsClient(http, cfg.google_maps_api_key, base_url=cfg.google_maps_base_url)
    return Container(
        settings=cfg,
        http=http,
        tokens=tokens,
        identity=identity,
        session=session,
        geo=geo,
        google=google,
        resolver=LocationResolver(google, google, default_region=cfg.default_geocode_region),
        viewport=ViewportLoader(
            geo,
            debounce_s=cfg.viewport_debounce_ms / 1000,
            limit=cfg.viewport_limit,
            mode=cfg.viewport_mode,  # type: ignore[arg-type]
        ),
        properties=UserPropertiesService(identity),
    )
