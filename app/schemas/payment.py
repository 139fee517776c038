from decimal import Decimal
from pydantic import BaseModel, Field
from typing import Optional, Any, Dict


# ====== Данные хоста (только чтение для провайдера) ======

class PaymentProfile(BaseModel):
    payment_profile_id: int
    provider_id: str
    title: str = ""
    options: Dict[str, Any] = Field(default_factory=dict)

    @property
    def api_key(self) -> str:
        return str(self.options.get("api_key") or "")

    @property
    def api_secret(self) -> str:
        return str(self.options.get("api_secret") or "")


class User(BaseModel):
    user_id: int
    username: str = ""
    email: str = ""


class PurchaseRequest(BaseModel):
    request_key: str
    cost_amount: Decimal
    cost_currency: str = "VND"
    payment_profile_id: int
    purchasable_type_id: str = ""
    description: str = ""
    return_url: Optional[str] = None
    cancel_url: Optional[str] = None
    extra_data: Dict[str, Any] = Field(default_factory=dict)
    status: str = "pending"
    user: Optional[User] = None

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> "PurchaseRequest":
        data = dict(row)
        user_id = data.pop("user_id", None)
        username = data.pop("username", None)
        email = data.pop("email", None)
        if user_id is not None:
            data["user"] = User(user_id=user_id, username=username or "", email=email or "")
        return cls.model_validate(data)


class Purchase(BaseModel):
    title: str = ""
    description: str = ""
    cost: Decimal
    currency: str = "VND"
    return_url: Optional[str] = None
    cancel_url: Optional[str] = None
    extra_data: Dict[str, Any] = Field(default_factory=dict)

    @classmethod
    def from_purchase_request(cls, pr: PurchaseRequest) -> "Purchase":
        return cls(
            title=pr.description,
            description=pr.description,
            cost=pr.cost_amount,
            currency=pr.cost_currency,
            return_url=pr.return_url,
            cancel_url=pr.cancel_url,
            extra_data=pr.extra_data,
        )


# ====== Вход admin API ======

class PaymentProfileIn(BaseModel):
    provider_id: str = "tpb_baokim"
    title: str = ""
    options: Dict[str, Any] = Field(default_factory=dict)


class PurchaseRequestIn(BaseModel):
    request_key: str
    payment_profile_id: int
    cost_amount: Decimal
    cost_currency: str = "VND"
    description: str = ""
    purchasable_type_id: str = ""
    user_id: Optional[int] = None
    username: Optional[str] = None
    email: Optional[str] = None
    return_url: Optional[str] = None
    cancel_url: Optional[str] = None
    extra_data: Dict[str, Any] = Field(default_factory=dict)


# ====== Выбор канала оплаты от плательщика ======

class ProcessPaymentIn(BaseModel):
    type: Optional[str] = None
    bank_id: Optional[Any] = None
    model_config = {"extra": "allow"}
