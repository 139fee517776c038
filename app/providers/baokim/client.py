import json
import logging
import httpx
from typing import Any, Dict, List, Optional

from ...schemas.payment import PaymentProfile
from ...settings import settings
from ...utils.http import client
from .exceptions import GatewayTransportError
from .protocol import BANK_LIST_PATH, ProtocolVariant
from .schemas import BankChannel, GatewayResponse
from .token import issue_token

logger = logging.getLogger(__name__)


def _decode(text: str) -> Any:
    try:
        return json.loads(text)
    except ValueError:
        return None


class BaoKimClient:
    """
    Исходящие вызовы к BaoKim:
      - GET  /payment/api/v4/bpm/list      (банки/каналы)
      - POST {prefix}/order/send           (создать заказ)
      - GET  {prefix}/order/detail         (эталонные данные заказа)
    Одна попытка на вызов, без ретраев.
    """

    def __init__(self, variant: ProtocolVariant, transport: Optional[httpx.AsyncBaseTransport] = None):
        self.variant = variant
        self._transport = transport

    @property
    def endpoint(self) -> str:
        base = settings.BAOKIM_LIVE_URL if settings.ENABLE_LIVE_PAYMENTS else settings.BAOKIM_SANDBOX_URL
        return base.rstrip("/")

    def _client(self) -> httpx.AsyncClient:
        return client(timeout_sec=settings.HTTP_TIMEOUT_SEC, transport=self._transport)

    async def list_channels(self, profile: PaymentProfile) -> List[BankChannel]:
        try:
            async with self._client() as c:
                resp = await c.get(
                    f"{self.endpoint}{BANK_LIST_PATH}",
                    params={"jwt": issue_token(profile, {})},
                )
        except httpx.HTTPError as e:
            logger.warning("BaoKim bank list unreachable: %s", e)
            return []

        if resp.status_code != 200:
            logger.warning("BaoKim bank list responded %s", resp.status_code)
            return []

        js = _decode(resp.text)
        if not isinstance(js, dict) or not isinstance(js.get("data"), list):
            logger.warning("BaoKim bank list has no data block")
            return []

        channels = []
        for item in js["data"]:
            try:
                channels.append(BankChannel.model_validate(item))
            except ValueError:
                logger.debug("Skipping malformed bank entry: %r", item)
        return channels

    async def create_order(self, profile: PaymentProfile, params: Dict[str, Any]) -> GatewayResponse:
        try:
            async with self._client() as c:
                resp = await c.post(
                    f"{self.endpoint}{self.variant.order_send_path}",
                    data={k: str(v) for k, v in params.items()},
                    params={"jwt": issue_token(profile, params)},
                )
        except httpx.HTTPError as e:
            raise GatewayTransportError(str(e) or e.__class__.__name__) from e

        return GatewayResponse(
            status_code=resp.status_code,
            reason=resp.reason_phrase,
            text=resp.text,
            json=_decode(resp.text),
        )

    async def fetch_order_detail(
        self, profile: PaymentProfile, order_id: Any, mrc_order_id: str
    ) -> GatewayResponse:
        query: Dict[str, Any] = {"id": "" if order_id is None else order_id, "mrc_order_id": mrc_order_id}
        if self.variant.detail_requires_token:
            query["jwt"] = issue_token(profile, {})

        try:
            async with self._client() as c:
                resp = await c.get(f"{self.endpoint}{self.variant.order_detail_path}", params=query)
        except httpx.HTTPError as e:
            raise GatewayTransportError(str(e) or e.__class__.__name__) from e

        if resp.status_code != 200:
            raise GatewayTransportError(
                resp.reason_phrase or f"HTTP {resp.status_code}",
                status_code=resp.status_code,
                reason=resp.reason_phrase,
            )

        js = _decode(resp.text)
        if not isinstance(js, dict) or not isinstance(js.get("data"), dict):
            raise GatewayTransportError(
                "Malformed order detail response",
                status_code=resp.status_code,
                reason=resp.reason_phrase,
            )

        return GatewayResponse(
            status_code=resp.status_code,
            reason=resp.reason_phrase,
            text=resp.text,
            json=js,
        )
