from collections.abc import Mapping
from datetime import date
from typing import Optional, Protocol
from urllib.parse import urlencode


class ApiClient(Protocol):
    def request_json(
        self, url: str, headers: Optional[Mapping[str, str]] = None
    ) -> dict[str, object]: ...


class FrankfurterAdapter:
    source_name: str = "frankfurter"

    def __init__(self, client: Optional[ApiClient] = None) -> None:
        self.client = client

    def fetch_rates(
        self, start_date: date, end_date: date, base: str = "EUR", symbol: str = "USD"
    ) -> dict[str, object]:
        if self.client is None:
            raise ValueError("client is required for fetch operations")
        if start_date > end_date:
            raise ValueError("start_date must not be after end_date")
        query = urlencode({"from": base, "to": symbol})
        url = (
            "https://api.frankfurter.app/"
            f"{start_date.isoformat()}..{end_date.isoformat()}?{query}"
        )
        payload = self.client.request_json(url)
        return {"source": self.source_name, "entity_id": f"{base}/{symbol}", "payload": payload}
