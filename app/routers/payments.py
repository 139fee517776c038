from fastapi import APIRouter, HTTPException
from typing import Any, Dict, Tuple

from ..db import get_payment_profile, get_purchase_request
from ..providers.registry import get_provider_by_name
from ..providers.baokim.exceptions import PaymentUserError
from ..schemas.payment import PaymentProfile, ProcessPaymentIn, Purchase, PurchaseRequest

router = APIRouter()


async def _load(request_key: str) -> Tuple[Any, PurchaseRequest, PaymentProfile, Purchase]:
    row = await get_purchase_request(request_key)
    if not row:
        raise HTTPException(status_code=404, detail="Purchase request not found")
    purchase_request = PurchaseRequest.from_row(row)
    if purchase_request.status != "pending":
        raise HTTPException(status_code=400, detail="Purchase request is already completed")

    profile_row = await get_payment_profile(purchase_request.payment_profile_id)
    if not profile_row:
        raise HTTPException(status_code=400, detail="Payment profile not found")
    profile = PaymentProfile.model_validate(profile_row)

    provider = get_provider_by_name(profile.provider_id)
    if not provider:
        raise HTTPException(status_code=400, detail="Provider not found")

    return provider, purchase_request, profile, Purchase.from_purchase_request(purchase_request)


@router.get("/purchase/{request_key}")
async def initiate(request_key: str):
    """
    Данные для формы выбора банка (рендер — на стороне хоста):
    { purchase_request, purchase, bank_list: [type == 1], allow_qrcode, allow_momo }
    """
    provider, purchase_request, profile, purchase = await _load(request_key)
    return await provider.initiate_payment(purchase_request, profile, purchase)


@router.post("/purchase/{request_key}/process")
async def process(request_key: str, body: ProcessPaymentIn):
    """
    Вход: { "type": "qrcode" | "momo" } либо { "bank_id": 12 }
    Выход: { "status": "OK", "redirectRequest": {"url": "...", "type": "redirect"} }
    """
    provider, purchase_request, profile, purchase = await _load(request_key)
    form: Dict[str, Any] = body.model_dump()
    try:
        url = await provider.process_payment(form, purchase_request, profile, purchase)
    except PaymentUserError as e:
        raise HTTPException(status_code=400, detail=e.message)

    return {
        "status": "OK",
        "redirectRequest": {"url": url, "type": "redirect"},
    }
