from collections.abc import Mapping
from typing import Optional, Protocol
from urllib.parse import urlencode


class ApiClient(Protocol):
    def request_json(
        self, url: str, headers: Optional[Mapping[str, str]] = None
    ) -> dict[str, object]: ...


class OpenWeatherAirQualityAdapter:
    source_name: str = "openweather"

    def __init__(self, client: Optional[ApiClient] = None, api_key: str = "") -> None:
        self.client = client
        self.api_key = api_key

    def fetch_air_pollution_history(
        self, lat: float, lon: float, start: int, end: int
    ) -> dict[str, object]:
        if self.client is None:
            raise ValueError("client is required for fetch operations")
        query = urlencode(
            {
                "lat": lat,
                "lon": lon,
                "start": start,
                "end": end,
                "appid": self.api_key,
            }
        )
        url = f"https://api.openweathermap.org/data/2.5/air_pollution/history?{query}"
        payload = self.client.request_json(url)
        return {"source": self.source_name, "entity_id": f"{lat},{lon}", "payload": payload}
