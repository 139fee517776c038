import base64
import secrets
import time
import jwt
from typing import Any, Dict, Optional

from ...schemas.payment import PaymentProfile
from ...settings import settings

ALGO = "HS256"


def issue_token(profile: PaymentProfile, form_params: Dict[str, Any], now: Optional[int] = None) -> str:
    """
    JWT для запросов к BaoKim. В токен вшиваются form_params запроса,
    поэтому токен нельзя переиспользовать с другим телом.
    """
    now = int(time.time()) if now is None else now
    payload = {
        "iat": now,
        "jti": base64.b64encode(secrets.token_bytes(32)).decode(),
        "iss": profile.api_key,
        "nbf": now,
        "exp": now + settings.BAOKIM_TOKEN_EXPIRE_SEC,
        "form_params": form_params,
    }
    return jwt.encode(payload, profile.api_secret, algorithm=ALGO)
