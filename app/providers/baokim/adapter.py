import json
import logging
import httpx
from typing import Any, Dict, List, Optional
from urllib.parse import urljoin

from ...db import complete_purchase_request, get_payment_profile, get_purchase_request, insert_provider_log
from ...schemas.payment import PaymentProfile, Purchase, PurchaseRequest
from ...settings import settings
from .bank_list import BankListCache
from .callback import CallbackValidator, setup_callback
from .client import BaoKimClient
from .exceptions import GatewayTransportError, PaymentUserError
from .protocol import BANK_ID_MOMO, BANK_ID_QRCODE, ProtocolVariant, get_variant
from .schemas import BankChannel, CallbackState, PaymentResult

logger = logging.getLogger(__name__)

ERR_CHOOSE_VALID_BANK = "Please choose a valid bank."
ERR_CREATING_ORDER = "An error occurred while creating the order. Please try again later."
ERR_INVALID_API_KEY = "Please enter a valid API key."
ERR_INVALID_API_SECRET = "Please enter a valid API secret."

ACK_OK = {"err_code": 0, "message": "ok"}


def _uint(v: Any) -> int:
    try:
        n = int(str(v).strip())
    except (TypeError, ValueError):
        return 0
    return n if n > 0 else 0


def _first_message(messages: Any) -> Optional[str]:
    """Первое непустое сообщение: строка, список или словарь по полям, с любой вложенностью."""
    if isinstance(messages, dict):
        messages = list(messages.values())
    if not isinstance(messages, (list, tuple)):
        messages = [messages]
    for entry in messages:
        if isinstance(entry, (dict, list, tuple)):
            entry = _first_message(entry)
        elif isinstance(entry, (str, int, float)) and not isinstance(entry, bool):
            entry = str(entry).strip()
        else:
            entry = None
        if entry:
            return entry
    return None


class BaoKimAdapter:
    """
    BaoKim (Вьетнам):
      - initiate_payment  -> view model со списком банков (type == 1)
      - process_payment   -> POST order/send, возвращает URL оплаты
      - process_callback  -> проверка вебхука, сверка с order/detail, завершение запроса
    Различия версий API — в ProtocolVariant (settings.BAOKIM_PROTOCOL).
    """

    name = "tpb_baokim"
    title = "BaoKim"

    def __init__(
        self,
        variant: Optional[ProtocolVariant] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.variant = variant or get_variant(settings.BAOKIM_PROTOCOL)
        self.gateway = BaoKimClient(self.variant, transport=transport)
        self.bank_list = BankListCache(self.gateway, ttl_sec=settings.BAOKIM_BANK_LIST_TTL_SEC)
        self.validator = CallbackValidator(self.variant, self.gateway)

    # ---- Config ----
    def verify_config(self, options: Dict[str, Any]) -> List[str]:
        if not str(options.get("api_key") or ""):
            return [ERR_INVALID_API_KEY]
        if not str(options.get("api_secret") or ""):
            return [ERR_INVALID_API_SECRET]
        return []

    def supports_recurring(self, profile: PaymentProfile, unit: str, amount: Any) -> bool:
        return False

    def get_callback_url(self) -> str:
        return settings.BAOKIM_WEBHOOK_URL or f"{settings.PUBLIC_BASE_URL.rstrip('/')}/payment_callback/{self.name}"

    # ---- Initiation ----
    def get_payment_params(self, purchase_request: PurchaseRequest, purchase: Purchase) -> Dict[str, Any]:
        params: Dict[str, Any] = {
            "mrc_order_id": purchase_request.request_key,
            "total_amount": str(purchase.cost),
            "description": purchase.description,
            "url_success": purchase.return_url or "",
            "url_detail": purchase.cancel_url or "",
            "accept_bank": 1,
            "accept_cc": 1,
            "accept_qrpay": 1,
            "webhooks": self.get_callback_url(),
            "lang": "vi",
        }

        if purchase_request.user is not None:
            params["customer_email"] = purchase_request.user.email
            params["customer_name"] = purchase_request.user.username

        extra = purchase.extra_data or {}
        if extra.get("phone_number"):
            params["customer_phone"] = str(extra["phone_number"])
        if extra.get("customer_address"):
            params["customer_address"] = str(extra["customer_address"])

        return params

    async def _bank_transfer_channels(self, profile: PaymentProfile) -> List[BankChannel]:
        return [b for b in await self.bank_list.get(profile) if b.type == 1]

    async def initiate_payment(
        self, purchase_request: PurchaseRequest, profile: PaymentProfile, purchase: Purchase
    ) -> Dict[str, Any]:
        return {
            "purchase_request": purchase_request.model_dump(mode="json"),
            "purchase": purchase.model_dump(mode="json"),
            "bank_list": [b.model_dump(mode="json") for b in await self._bank_transfer_channels(profile)],
            "allow_qrcode": True,
            "allow_momo": self.variant.momo_enabled,
        }

    async def resolve_bank_id(self, form: Dict[str, Any], profile: PaymentProfile) -> int:
        pay_type = str(form.get("type") or "")
        if pay_type == "qrcode":
            return BANK_ID_QRCODE
        if pay_type == "momo" and self.variant.momo_enabled:
            return BANK_ID_MOMO

        bank_id = _uint(form.get("bank_id"))
        selected = [b for b in await self._bank_transfer_channels(profile) if b.id == bank_id]
        if len(selected) != 1:
            raise PaymentUserError(ERR_CHOOSE_VALID_BANK)
        return bank_id

    def _redirect_url(self, data: Dict[str, Any]) -> Optional[str]:
        url = data.get(self.variant.redirect_field)
        if not url or not isinstance(url, str):
            return None
        if self.variant.redirect_is_relative:
            return urljoin(self.gateway.endpoint + "/", url.lstrip("/"))
        return url

    async def process_payment(
        self,
        form: Dict[str, Any],
        purchase_request: PurchaseRequest,
        profile: PaymentProfile,
        purchase: Purchase,
    ) -> str:
        params = self.get_payment_params(purchase_request, purchase)
        params["bpm_id"] = await self.resolve_bank_id(form, profile)

        try:
            resp = await self.gateway.create_order(profile, params)
        except GatewayTransportError as e:
            logger.exception("Payment BaoKim: creating order %s failed", purchase_request.request_key)
            await insert_provider_log(
                provider_id=self.name,
                purchase_request_key=purchase_request.request_key,
                log_type="error",
                log_message="Creating a order",
                log_details={"requestData": params, "error": str(e)},
            )
            raise PaymentUserError(ERR_CREATING_ORDER) from e

        js = resp.json
        data_block = js.get("data") if isinstance(js, dict) else None
        if not isinstance(data_block, dict):
            data_block = {}

        await insert_provider_log(
            provider_id=self.name,
            purchase_request_key=purchase_request.request_key,
            transaction_id=str(data_block.get("order_id") or ""),
            log_type="info",
            log_message="Creating a order",
            log_details={
                "responseData": js,
                "responseCode": resp.status_code,
                "requestData": params,
                "_rawData": resp.text,
            },
        )

        if not isinstance(js, dict):
            logger.error("Payment BaoKim: invalid response: %s", resp.text[:500])
            raise PaymentUserError(ERR_CREATING_ORDER)

        redirect = self._redirect_url(data_block)
        if redirect:
            return redirect

        if self.variant.surfaces_error_messages:
            code = js.get("code")
            message = _first_message(js.get("message"))
            if isinstance(code, (int, float)) and not isinstance(code, bool) and code > 0 and message:
                # https://developer.baokim.vn/payment/#bng-m-li7
                raise PaymentUserError(message)

        raise PaymentUserError(ERR_CREATING_ORDER)

    # ---- Callback ----
    def setup_callback(self, input_raw: str, ip: Optional[str] = None) -> CallbackState:
        return setup_callback(input_raw, ip)

    async def _resolve(self, state: CallbackState) -> None:
        if not state.request_key:
            return
        row = await get_purchase_request(state.request_key)
        if not row:
            return
        state.purchase_request = PurchaseRequest.from_row(row)
        profile_row = await get_payment_profile(state.purchase_request.payment_profile_id)
        if profile_row:
            state.payment_profile = PaymentProfile.model_validate(profile_row)

    async def _validate(self, state: CallbackState) -> bool:
        await self._resolve(state)
        if not await self.validator.validate_callback(state):
            return False
        if not self.validator.validate_cost(state):
            return False
        self.validator.get_payment_result(state)
        return True

    async def complete_transaction(self, state: CallbackState) -> None:
        if state.payment_result == PaymentResult.RECEIVED:
            if await complete_purchase_request(state.request_key):
                state.log_type = "payment"
                state.log_message = json.dumps(ACK_OK)
            else:
                state.log_type = "info"
                state.log_message = "Transaction already processed. Skipping."

        if not state.log_type:
            state.log_type = "info"
            state.log_message = "OK, no action"

    async def log(self, state: CallbackState) -> None:
        await insert_provider_log(
            provider_id=self.name,
            purchase_request_key=state.request_key,
            transaction_id=state.transaction_id,
            log_type=state.log_type or "info",
            log_message=state.log_message or "",
            log_details=state.log_details or {},
        )

    async def process_callback(self, input_raw: str, ip: Optional[str] = None) -> CallbackState:
        state = self.setup_callback(input_raw, ip)
        ok = False
        try:
            ok = await self._validate(state)
        except Exception as e:
            logger.exception("Payment BaoKim: callback %s failed", state.request_key)
            state.payment_result = None
            state.fail(f"Unexpected error: {e}")
        finally:
            self.validator.prepare_log_data(state)

        if ok:
            await self.complete_transaction(state)

        logger.info(
            "BaoKim callback | key=%s txn=%s type=%s | %s",
            state.request_key or "-", state.transaction_id or "-", state.log_type, state.log_message,
        )
        await self.log(state)
        return state
