# urban_snapshot/utils/http.py
import httpx
from typing import Optional

DEFAULT_HEADERS = {
    "Accept": "application/json",
    "User-Agent": "UrbanSnapshot/1.0",
}

def _client(timeout: float, transport: Optional[httpx.AsyncBaseTransport]) -> httpx.AsyncClient:
    return httpx.AsyncClient(
        timeout=timeout,
        transport=transport,
        headers=DEFAULT_HEADERS,
        follow_redirects=True,
    )

async def get_json(
    url: str,
    params: Optional[dict] = None,
    headers: Optional[dict] = None,
    timeout: float = 30.0,
    transport: Optional[httpx.AsyncBaseTransport] = None,
):
    async with _client(timeout, transport) as client:
        r = await client.get(url, params=params, headers=headers)
        r.raise_for_status()
        return r.json()
