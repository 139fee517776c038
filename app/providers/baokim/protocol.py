from dataclasses import dataclass
from typing import Tuple

BANK_LIST_PATH = "/payment/api/v4/bpm/list"

BANK_ID_QRCODE = 297
BANK_ID_MOMO = 299

AUTH_SIGNATURE = "signature"
AUTH_REFETCH = "refetch"

COST_TXN_TOTAL = "txn_total"
COST_ORDER_NET_OF_TAX = "order_net_of_tax"


@dataclass(frozen=True)
class ProtocolVariant:
    """
    Отличия двух версий API BaoKim. Машина состояний колбэка одна,
    варианты различаются только этими признаками.
    """
    name: str
    api_prefix: str
    authenticators: Tuple[str, ...]
    detail_requires_token: bool
    cost_rule: str
    momo_enabled: bool
    redirect_field: str
    redirect_is_relative: bool
    surfaces_error_messages: bool

    @property
    def order_send_path(self) -> str:
        return f"{self.api_prefix}/order/send"

    @property
    def order_detail_path(self) -> str:
        return f"{self.api_prefix}/order/detail"


PAYMENT_V4 = ProtocolVariant(
    name="payment_v4",
    api_prefix="/payment/api/v4",
    authenticators=(AUTH_REFETCH,),
    detail_requires_token=True,
    cost_rule=COST_TXN_TOTAL,
    momo_enabled=True,
    redirect_field="payment_url",
    redirect_is_relative=False,
    surfaces_error_messages=True,
)

API_V4 = ProtocolVariant(
    name="api_v4",
    api_prefix="/api/v4",
    authenticators=(AUTH_SIGNATURE, AUTH_REFETCH),
    detail_requires_token=False,
    cost_rule=COST_ORDER_NET_OF_TAX,
    momo_enabled=False,
    redirect_field="redirect_url",
    redirect_is_relative=True,
    surfaces_error_messages=False,
)

_variants = {v.name: v for v in (PAYMENT_V4, API_V4)}


def get_variant(name: str) -> ProtocolVariant:
    variant = _variants.get((name or "").strip().lower())
    if not variant:
        raise ValueError(f"Unknown BaoKim protocol: {name!r}")
    return variant
