from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable

from geocar_client.application.dtos.spatial_feature_dto import normalize_paged
from geocar_client.application.ports.geo_api_port import GeoApiPort, ViewportMode
from geocar_client.domain.entities.spatial_feature import SpatialFeature
from geocar_client.domain.services.geometry import centered_region, region_to_bbox
from geocar_client.domain.value_objects.location import ResolvedLocation
from geocar_client.domain.value_objects.region import Region
from geocar_client.infrastructure.metrics import VIEWPORT_LOADS

logger = logging.getLogger(__name__)

DEFAULT_DEBOUNCE_S = 0.35


class ViewportLoader:
    """Loads property polygons for the visible map region.

    Region-change events are debounced (trailing window, last region wins).
    By default a single in-flight flag drops any load requested while another
    is running; results replace ``features`` wholesale, last write wins.

    With ``discard_stale=True`` loads are never dropped. Each one is tagged
    with a sequence number instead and only the most recently issued response
    is applied.
    """

    def __init__(
        self,
        geo: GeoApiPort,
        *,
        debounce_s: float = DEFAULT_DEBOUNCE_S,
        limit: int = 200,
        mode: ViewportMode = "intersects",
        discard_stale: bool = False,
        on_features: Callable[[list[SpatialFeature]], None] | None = None,
        on_error: Callable[[Exception], None] | None = None,
    ) -> None:
        self.geo = geo
        self.debounce_s = debounce_s
        self.limit = limit
        self.mode = mode
        self.discard_stale = discard_stale
        self.on_features = on_features
        self.on_error = on_error

        self.features: list[SpatialFeature] = []
        self.region: Region | None = None
        self.selected: ResolvedLocation | None = None
        self._in_flight = False
        self._seq = 0
        self._timer: asyncio.TimerHandle | None = None
        self._tasks: set[asyncio.Task[None]] = set()

    def _log(self, msg: str) -> None:
        logger.debug("[ViewportLoader] %s", msg)

    @property
    def is_loading(self) -> bool:
        return self._in_flight

    async def load(self, region: Region) -> list[SpatialFeature] | None:
        """Fetches features for ``region``.

        Returns None when the load was dropped (busy) or its response was
        stale. Any fetch or decoding error clears ``features`` and propagates.
        """
        if self._in_flight and not self.discard_stale:
            VIEWPORT_LOADS.labels(outcome="dropped").inc()
            self._log("Load already in flight, dropping region change")
            return None
        self._in_flight = True
        self._seq += 1
        seq = self._seq
        bbox = region_to_bbox(region).as_param()
        try:
            raw = await self.geo.fetch_viewport(bbox, limit=self.limit, mode=self.mode)
            stale = seq != self._seq
            features = [] if stale else normalize_paged(raw)
        except Exception:
            VIEWPORT_LOADS.labels(outcome="error").inc()
            if seq == self._seq:
                self._apply([])
            raise
        finally:
            if seq == self._seq:
                self._in_flight = False
        if stale:
            VIEWPORT_LOADS.labels(outcome="stale").inc()
            self._log(f"Discarding stale response #{seq}, latest is #{self._seq}")
            return None
        VIEWPORT_LOADS.labels(outcome="ok").inc()
        self._log(f"bbox={bbox} -> {len(features)} features")
        self._apply(features)
        return features

    def _apply(self, features: list[SpatialFeature]) -> None:
        self.features = features
        if self.on_features is not None:
            self.on_features(features)

    # ---------- Debounce ----------
    def on_region_change(self, region: Region) -> None:
        """Schedules a load for ``region`` after the debounce window.

        Must be called from a running event loop. A newer event within the
        window replaces the pending one; loads already started are not aborted.
        """
        self.region = region
        if self._timer is not None:
            self._timer.cancel()
        loop = asyncio.get_running_loop()
        self._timer = loop.call_later(self.debounce_s, self._fire, region)

    def _fire(self, region: Region) -> None:
        self._timer = None
        task = asyncio.get_running_loop().create_task(self._load_reporting(region))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def _load_reporting(self, region: Region) -> None:
        try:
            await self.load(region)
        except Exception as e:
            # unawaited task, the error must surface here
            if self.on_error is not None:
                self.on_error(e)
            else:
                logger.exception("[ViewportLoader] Viewport load failed: %s", e)

    async def wait_idle(self) -> None:
        """Waits for the pending debounce window and any load it started."""
        while self._timer is not None or self._tasks:
            if self._tasks:
                await asyncio.gather(*list(self._tasks))
            else:
                await asyncio.sleep(self.debounce_s / 4 or 0.01)

    def cancel_pending(self) -> None:
        """Drops a scheduled (not yet started) load, e.g. when the map goes away."""
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

    # ---------- Navigation ----------
    async def animate_to(self, lat: float, lng: float, description: str | None = None) -> list[SpatialFeature] | None:
        """Recentres on a point, marks it as selected and loads immediately."""
        region = centered_region(lat, lng)
        self.region = region
        self.selected = ResolvedLocation(lat=lat, lng=lng, description=description)
        return await self.load(region)
