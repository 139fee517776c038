"""
Проверка входящих уведомлений BaoKim.

Порядок шагов фиксирован: разбор -> поиск запроса -> аутентификация ->
проверка суммы -> результат -> данные для лога. Любой шаг может завершить
обработку с ошибкой; данные для лога собираются в любом случае.
"""
import json
import logging
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Any, Dict, Optional

from ...utils.security import canonical_json, hmac_sha256_hex, signatures_match
from .client import BaoKimClient
from .exceptions import GatewayTransportError
from .protocol import (
    AUTH_REFETCH,
    AUTH_SIGNATURE,
    COST_ORDER_NET_OF_TAX,
    COST_TXN_TOTAL,
    ProtocolVariant,
)
from .schemas import CallbackState, PaymentResult

logger = logging.getLogger(__name__)

STAT_COMPLETED = "c"
CENT = Decimal("0.01")


# ---- Parse ----

def _scalar_str(v: Any) -> Optional[str]:
    if isinstance(v, bool) or v is None:
        return None
    if isinstance(v, (str, int, float)):
        return str(v)
    return None


def filter_input(js: Any) -> Dict[str, Any]:
    """order/txn — только dict, sign — только строка; всё прочее -> пустое значение."""
    if not isinstance(js, dict):
        js = {}
    order = js.get("order")
    txn = js.get("txn")
    return {
        "order": dict(order) if isinstance(order, dict) else {},
        "txn": dict(txn) if isinstance(txn, dict) else {},
        "sign": _scalar_str(js.get("sign")) or "",
    }


def setup_callback(input_raw: str, ip: Optional[str] = None) -> CallbackState:
    try:
        js = json.loads(input_raw) if input_raw else {}
    except ValueError:
        js = {}
    if not isinstance(js, dict):
        js = {}

    filtered = filter_input(js)
    state = CallbackState(input_raw=input_raw or "", raw_post=js, input_filtered=filtered, ip=ip)

    state.request_key = _scalar_str(filtered["order"].get("mrc_order_id")) or None
    state.transaction_id = _scalar_str(filtered["order"].get("txn_id")) or None
    state.signature = filtered["sign"]
    return state


# ---- Authenticate ----

def merge_recursive(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    out = dict(base)
    for k, v in override.items():
        if isinstance(v, dict) and isinstance(out.get(k), dict):
            out[k] = merge_recursive(out[k], v)
        else:
            out[k] = v
    return out


class SignatureAuthenticator:
    """HMAC-SHA256(api_secret, canonical_json(тело без sign)) == sign."""

    async def authenticate(self, state: CallbackState, gateway: BaoKimClient) -> bool:
        # Подписываются ровно те ключи, что пришли в теле, в порядке тела.
        # Каноническая форма: компактный JSON без экранирования не-ASCII;
        # числа перекодируются после разбора (50500.00 -> 50500.0).
        payload = {k: v for k, v in state.raw_post.items() if k != "sign"}
        expected = hmac_sha256_hex(state.payment_profile.api_secret, canonical_json(payload))
        if not state.signature or not signatures_match(expected, state.signature):
            logger.warning("BaoKim callback %s: bad signature from %s", state.request_key, state.ip)
            return state.fail("Callback could not be verified as valid.", http_code=400)
        return True


class RefetchAuthenticator:
    """Сверяем уведомление с /order/detail; данные шлюза перекрывают данные уведомления."""

    async def authenticate(self, state: CallbackState, gateway: BaoKimClient) -> bool:
        order = state.order
        order_id = order.get("id", order.get("order_id"))
        try:
            resp = await gateway.fetch_order_detail(state.payment_profile, order_id, state.request_key)
        except GatewayTransportError as e:
            return state.fail(str(e), http_code=400)

        state.order_detail = resp.json
        detail = resp.json["data"]

        mrc_order_id = detail.get("mrc_order_id")
        if mrc_order_id is None or mrc_order_id != state.request_key:
            return state.fail("Mismatch order ID.")

        state.input_filtered = merge_recursive(state.input_filtered, {"order": detail})
        return True


_authenticators = {
    AUTH_SIGNATURE: SignatureAuthenticator(),
    AUTH_REFETCH: RefetchAuthenticator(),
}


# ---- Cost ----

def to_decimal(v: Any) -> Optional[Decimal]:
    if v is None or isinstance(v, bool):
        return None
    try:
        d = Decimal(str(v).strip())
    except (InvalidOperation, ValueError):
        return None
    return d if d.is_finite() else None


def round_cost(v: Decimal) -> Decimal:
    return v.quantize(CENT, rounding=ROUND_HALF_UP)


def reconciled_amount(state: CallbackState, cost_rule: str) -> Optional[Decimal]:
    if cost_rule == COST_TXN_TOTAL:
        return to_decimal(state.txn.get("total_amount"))
    if cost_rule == COST_ORDER_NET_OF_TAX:
        total = to_decimal(state.order.get("total_amount"))
        # null tax_fee означает заказ без налога
        tax = to_decimal(state.order.get("tax_fee") or 0)
        if total is None or tax is None:
            return None
        return total - tax
    raise ValueError(f"Unknown cost rule: {cost_rule!r}")


class CallbackValidator:
    def __init__(self, variant: ProtocolVariant, gateway: BaoKimClient):
        self.variant = variant
        self.gateway = gateway
        self.authenticators = [_authenticators[name] for name in variant.authenticators]

    def validate_expected_values(self, state: CallbackState) -> bool:
        return state.purchase_request is not None and state.payment_profile is not None

    async def validate_callback(self, state: CallbackState) -> bool:
        if not self.validate_expected_values(state):
            state.fail("Data received from BaoKim does not contain the expected values.")
            if not state.request_key:
                # без ключа повтор всё равно не поможет — просим шлюз не ретраить
                state.http_code = 200
            return False

        for authenticator in self.authenticators:
            if not await authenticator.authenticate(state, self.gateway):
                return False
        return True

    def validate_cost(self, state: CallbackState) -> bool:
        cost = round_cost(state.purchase_request.cost_amount)
        paid = reconciled_amount(state, self.variant.cost_rule)
        if paid is None or cost != round_cost(paid):
            return state.fail("Invalid cost amount")
        return True

    def get_payment_result(self, state: CallbackState) -> None:
        if state.order.get("stat") == STAT_COMPLETED:
            state.payment_result = PaymentResult.RECEIVED

    def prepare_log_data(self, state: CallbackState) -> None:
        state.log_details = {
            **state.raw_post,
            "raw": state.input_raw,
            "orderDetail": state.order_detail,
        }
