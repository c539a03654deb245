from __future__ import annotations

import functools

from geocar_client.infrastructure.container import Container, build_container


@functools.lru_cache
def get_container() -> Container:
    """Process-wide container; tests swap it through ``app.dependency_overrides``."""
    return build_container()
