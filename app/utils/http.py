import httpx
from typing import Optional

def client(timeout_sec: int = 15, transport: Optional[httpx.AsyncBaseTransport] = None) -> httpx.AsyncClient:
    # Без ретраев: каждый вызов к шлюзу — одна попытка с таймаутом
    return httpx.AsyncClient(timeout=timeout_sec, transport=transport)
