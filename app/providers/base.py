from typing import Protocol, Optional, Dict, Any, List

from ..schemas.payment import PaymentProfile, Purchase, PurchaseRequest


class PaymentProvider(Protocol):
    name: str
    title: str

    def verify_config(self, options: Dict[str, Any]) -> List[str]:
        ...

    async def initiate_payment(
        self, purchase_request: PurchaseRequest, profile: PaymentProfile, purchase: Purchase
    ) -> Dict[str, Any]:
        ...

    # Возвращает URL для редиректа плательщика или бросает PaymentUserError
    async def process_payment(
        self, form: Dict[str, Any], purchase_request: PurchaseRequest, profile: PaymentProfile, purchase: Purchase
    ) -> str:
        ...

    async def process_callback(self, input_raw: str, ip: Optional[str] = None) -> Any:
        ...

    # Подписки не поддерживаются
    def supports_recurring(self, profile: PaymentProfile, unit: str, amount: Any) -> bool:
        ...
