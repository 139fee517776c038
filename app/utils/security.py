import hmac, hashlib, json
from typing import Any

def canonical_json(data: Any) -> bytes:
    return json.dumps(data, ensure_ascii=False, separators=(",", ":")).encode("utf-8")

def hmac_sha256_hex(secret: str, payload: bytes) -> str:
    return hmac.new(secret.encode('utf-8'), payload, hashlib.sha256).hexdigest()

def signatures_match(expected: str, supplied: str) -> bool:
    return hmac.compare_digest(expected.encode('utf-8'), (supplied or "").encode('utf-8'))
