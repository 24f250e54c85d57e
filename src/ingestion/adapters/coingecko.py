from collections.abc import Mapping
from typing import Optional, Protocol
from urllib.parse import quote, urlencode


class ApiClient(Protocol):
    def request_json(
        self, url: str, headers: Optional[Mapping[str, str]] = None
    ) -> dict[str, object]: ...


class CoinGeckoAdapter:
    source_name: str = "coingecko"

    def __init__(self, client: Optional[ApiClient] = None) -> None:
        self.client = client

    def fetch_market_chart(
        self, coin_id: str, vs_currency: str = "usd", days: int = 7
    ) -> dict[str, object]:
        if self.client is None:
            raise ValueError("client is required for fetch operations")
        query = urlencode({"vs_currency": vs_currency, "days": days})
        url = f"https://api.coingecko.com/api/v3/coins/{quote(coin_id)}/market_chart?{query}"
        payload = self.client.request_json(url, headers={"Accept": "application/json"})
        return {"source": self.source_name, "entity_id": coin_id, "payload": payload}
