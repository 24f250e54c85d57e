from collections.abc import Mapping
from typing import Optional, Protocol
from urllib.parse import urlencode


class ApiClient(Protocol):
    def request_json(
        self, url: str, headers: Optional[Mapping[str, str]] = None
    ) -> dict[str, object]: ...


class OpenMeteoAdapter:
    source_name: str = "open_meteo"

    def __init__(self, client: Optional[ApiClient] = None) -> None:
        self.client = client

    def fetch_hourly_temperature(
        self, lat: float, lon: float, past_days: int = 7
    ) -> dict[str, object]:
        if self.client is None:
            raise ValueError("client is required for fetch operations")
        query = urlencode(
            {
                "latitude": lat,
                "longitude": lon,
                "hourly": "temperature_2m",
                "past_days": past_days,
                "forecast_days": 1,
                "timezone": "UTC",
            }
        )
        url = f"https://api.open-meteo.com/v1/forecast?{query}"
        payload = self.client.request_json(url)
        return {"source": self.source_name, "entity_id": f"{lat},{lon}", "payload": payload}
