from __future__ import annotations

from functools import lru_cache

from chatrelay.core.settings import get_settings
from chatrelay.services.relay_service import RelayService


@lru_cache
def get_relay_service() -> RelayService:
    return RelayService(settings=get_settings())
