"""Tests for outbound JWT issuing."""

import base64
import time

import jwt
import pytest

from app.providers.baokim.token import issue_token
from app.schemas.payment import PaymentProfile
from conftest import API_KEY, API_SECRET


@pytest.fixture
def profile():
    return PaymentProfile(
        payment_profile_id=1,
        provider_id="tpb_baokim",
        options={"api_key": API_KEY, "api_secret": API_SECRET},
    )


def test_claims_and_sixty_second_window(profile):
    now = int(time.time())
    token = issue_token(profile, {"mrc_order_id": "ORD-1", "total_amount": "100.00"}, now=now)
    claims = jwt.decode(token, API_SECRET, algorithms=["HS256"])

    assert claims["iss"] == API_KEY
    assert claims["iat"] == now
    assert claims["nbf"] == now
    assert claims["exp"] == now + 60
    assert claims["form_params"] == {"mrc_order_id": "ORD-1", "total_amount": "100.00"}
    assert len(base64.b64decode(claims["jti"])) == 32


def test_token_ids_are_unique(profile):
    a = jwt.decode(issue_token(profile, {}), API_SECRET, algorithms=["HS256"])
    b = jwt.decode(issue_token(profile, {}), API_SECRET, algorithms=["HS256"])
    assert a["jti"] != b["jti"]


def test_wrong_secret_is_rejected(profile):
    token = issue_token(profile, {})
    with pytest.raises(jwt.InvalidSignatureError):
        jwt.decode(token, "some-other-secret-0123456789abcdef", algorithms=["HS256"])


def test_expired_token_is_rejected(profile):
    token = issue_token(profile, {}, now=int(time.time()) - 120)
    with pytest.raises(jwt.ExpiredSignatureError):
        jwt.decode(token, API_SECRET, algorithms=["HS256"])
