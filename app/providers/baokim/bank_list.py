import asyncio
import time
from typing import Any, Callable, Dict, List, Optional

from ...schemas.payment import PaymentProfile
from .client import BaoKimClient
from .schemas import BankChannel

KEY_BANK_LIST = "TBP_BankList"


class BankListCache:
    """
    Кэш списка банков BaoKim на процесс (одна запись KEY_BANK_LIST).
    Обновление под asyncio.Lock; при ошибке отдаём старый список, если он есть.
    """

    def __init__(self, gateway: BaoKimClient, ttl_sec: int = 86400, clock: Callable[[], float] = time.time):
        self.gateway = gateway
        self.ttl_sec = ttl_sec
        self._clock = clock
        self._lock = asyncio.Lock()
        self._entries: Dict[str, Dict[str, Any]] = {}

    def _is_fresh(self, cached: Optional[Dict[str, Any]]) -> bool:
        if not cached:
            return False
        return cached["last_fetched"] + self.ttl_sec > self._clock()

    async def get(self, profile: PaymentProfile) -> List[BankChannel]:
        async with self._lock:
            cached = self._entries.get(KEY_BANK_LIST)
            if self._is_fresh(cached):
                return list(cached["channels"])

            channels = await self.gateway.list_channels(profile)
            if not channels:
                return list(cached["channels"]) if cached else []

            self._entries[KEY_BANK_LIST] = {"channels": channels, "last_fetched": self._clock()}
            return list(channels)

    def clear(self) -> None:
        self._entries.clear()
