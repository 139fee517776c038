"""Shared test fixtures."""

import json
from decimal import Decimal
from typing import Any, Callable, Dict, List, Union

import httpx
import pytest
import pytest_asyncio

from app import db
from app.providers.baokim.adapter import BaoKimAdapter
from app.providers.baokim.protocol import API_V4, PAYMENT_V4
from app.schemas.payment import PaymentProfile, PurchaseRequest
from app.utils.security import canonical_json, hmac_sha256_hex

API_KEY = "merchant-api-key"
API_SECRET = "merchant-api-secret-0123456789abcdef"

Route = Union[httpx.Response, Callable[[httpx.Request], httpx.Response]]


class FakeGateway:
    """BaoKim stand-in on top of httpx.MockTransport; records every request."""

    def __init__(self):
        self.requests: List[httpx.Request] = []
        self.routes: Dict[str, Route] = {}
        self.transport = httpx.MockTransport(self._handle)

    def on(self, path: str, route: Route) -> None:
        self.routes[path] = route

    def calls(self, path: str) -> List[httpx.Request]:
        return [r for r in self.requests if r.url.path == path]

    def _handle(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        route = self.routes.get(request.url.path)
        if route is None:
            return httpx.Response(404, json={"message": "not found"})
        return route(request) if callable(route) else route


def sign_payload(payload: Dict[str, Any], secret: str = API_SECRET) -> str:
    unsigned = {k: v for k, v in payload.items() if k != "sign"}
    return hmac_sha256_hex(secret, canonical_json(unsigned))


def detail_response(**order: Any) -> httpx.Response:
    return httpx.Response(200, json={"code": 0, "data": order})


@pytest.fixture
def gateway():
    return FakeGateway()


@pytest.fixture
def payment_v4_adapter(gateway):
    return BaoKimAdapter(variant=PAYMENT_V4, transport=gateway.transport)


@pytest.fixture
def api_v4_adapter(gateway):
    return BaoKimAdapter(variant=API_V4, transport=gateway.transport)


@pytest_asyncio.fixture
async def db_file(tmp_path, monkeypatch):
    """Fresh sqlite file per test."""
    path = str(tmp_path / "baokim.sqlite3")
    monkeypatch.setattr(db, "DB_FILE", path)
    await db.init_db()
    return path


@pytest_asyncio.fixture
async def profile(db_file) -> PaymentProfile:
    profile_id = await db.create_payment_profile(
        "tpb_baokim", {"api_key": API_KEY, "api_secret": API_SECRET}, title="BaoKim"
    )
    return PaymentProfile.model_validate(await db.get_payment_profile(profile_id))


@pytest_asyncio.fixture
async def purchase_request(profile) -> PurchaseRequest:
    await db.create_purchase_request(
        request_key="ORD-123",
        payment_profile_id=profile.payment_profile_id,
        cost_amount=str(Decimal("50000.00")),
        description="Premium membership",
        purchasable_type_id="user_upgrade",
        user_id=7,
        username="payer",
        email="payer@example.com",
        return_url="https://shop.example/return",
        cancel_url="https://shop.example/cancel",
        extra_data={"phone_number": "0900000000"},
    )
    return PurchaseRequest.from_row(await db.get_purchase_request("ORD-123"))


def as_raw(payload: Dict[str, Any]) -> str:
    return json.dumps(payload)
