from fastapi import APIRouter, HTTPException, status, Request
from app.db import (
    create_payment_profile,
    create_purchase_request,
    get_payment_profile,
    get_purchase_request,
    list_provider_logs,
)
from app.providers.registry import get_provider_by_name
from app.schemas.payment import PaymentProfileIn, PurchaseRequestIn
from app.settings import settings

router = APIRouter()

ADMIN_SECRET_HEADER = "X-Admin-Secret"


def _check_secret(request: Request):
    secret = request.headers.get(ADMIN_SECRET_HEADER)
    if secret != settings.ADMIN_SECRET:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Forbidden")


@router.post("/admin/payment_profiles")
async def admin_create_payment_profile(request: Request, body: PaymentProfileIn):
    _check_secret(request)
    provider = get_provider_by_name(body.provider_id)
    if not provider:
        raise HTTPException(status_code=400, detail="Provider not found")
    errors = provider.verify_config(body.options)
    if errors:
        raise HTTPException(status_code=400, detail=errors[0])
    profile_id = await create_payment_profile(provider.name, body.options, title=body.title)
    return {"result": "ok", "payment_profile_id": profile_id}


@router.post("/admin/purchase_requests")
async def admin_create_purchase_request(request: Request, body: PurchaseRequestIn):
    _check_secret(request)
    if not await get_payment_profile(body.payment_profile_id):
        raise HTTPException(status_code=400, detail="Payment profile not found")
    if await get_purchase_request(body.request_key):
        raise HTTPException(status_code=409, detail="Purchase request already exists")
    await create_purchase_request(**body.model_dump())
    return {"result": "ok", "request_key": body.request_key}


@router.get("/admin/provider_logs/{request_key}")
async def admin_provider_logs(request: Request, request_key: str):
    _check_secret(request)
    return {"result": "ok", "logs": await list_provider_logs(request_key)}
