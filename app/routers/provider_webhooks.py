from fastapi import APIRouter, HTTPException, Request
from fastapi.responses import JSONResponse

from ..providers.registry import get_provider_by_name
from ..providers.baokim.schemas import CallbackState, PaymentResult
from ..settings import settings

router = APIRouter()


def _callback_response(state: CallbackState) -> JSONResponse:
    if state.payment_result == PaymentResult.RECEIVED:
        return JSONResponse(status_code=200, content={"err_code": 0, "message": "ok"})
    if state.log_type == "error":
        return JSONResponse(
            status_code=state.http_code or settings.CALLBACK_FAILURE_HTTP_CODE,
            content={"err_code": 1, "message": state.log_message or ""},
        )
    return JSONResponse(status_code=200, content={"err_code": 0, "message": state.log_message or ""})


@router.post("/payment_callback/{provider_id}")
async def payment_callback(provider_id: str, request: Request):
    """
    Вебхук BaoKim:
    {
      "order": {"id", "mrc_order_id", "txn_id", "total_amount", "tax_fee", "stat"},
      "txn": {"total_amount"},
      "sign": "<hmac>"
    }
    Успех -> 200 {"err_code":0,"message":"ok"}
    """
    provider = get_provider_by_name(provider_id)
    if not provider:
        raise HTTPException(status_code=404, detail="Unknown provider")

    raw = (await request.body()).decode("utf-8", errors="replace")
    ip = request.client.host if request.client else None
    state = await provider.process_callback(raw, ip)
    return _callback_response(state)
