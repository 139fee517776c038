from dataclasses import dataclass, field
from enum import Enum
from pydantic import BaseModel
from typing import Optional, Any, Dict

from ...schemas.payment import PaymentProfile, PurchaseRequest


class BankChannel(BaseModel):
    # BaoKim присылает больше полей (name, bank_name, logo...) — сохраняем их как есть
    id: int
    type: Optional[int] = None
    model_config = {"extra": "allow"}


class PaymentResult(str, Enum):
    RECEIVED = "received"


@dataclass
class GatewayResponse:
    status_code: int
    reason: str
    text: str
    json: Any = None


@dataclass
class CallbackState:
    """
    Рабочая запись одного входящего уведомления BaoKim.
    input_filtered = {"order": {...}, "txn": {...}, "sign": "..."}
    """
    input_raw: str = ""
    raw_post: Dict[str, Any] = field(default_factory=dict)
    input_filtered: Dict[str, Any] = field(default_factory=dict)
    ip: Optional[str] = None

    request_key: Optional[str] = None
    transaction_id: Optional[str] = None
    signature: str = ""

    purchase_request: Optional[PurchaseRequest] = None
    payment_profile: Optional[PaymentProfile] = None
    order_detail: Any = None

    payment_result: Optional[PaymentResult] = None
    log_type: Optional[str] = None
    log_message: Optional[str] = None
    log_details: Optional[Dict[str, Any]] = None
    http_code: Optional[int] = None

    @property
    def order(self) -> Dict[str, Any]:
        return self.input_filtered.get("order") or {}

    @property
    def txn(self) -> Dict[str, Any]:
        return self.input_filtered.get("txn") or {}

    def fail(self, message: str, http_code: Optional[int] = None) -> bool:
        self.log_type = "error"
        self.log_message = message
        if http_code is not None:
            self.http_code = http_code
        return False
