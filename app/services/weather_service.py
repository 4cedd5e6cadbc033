"""
OpenWeather One Call 3.0 client
"""
import logging
from typing import Optional

import httpx

from app.core.config import settings

logger = logging.getLogger(__name__)


class WeatherServiceError(Exception):
    """OpenWeather call failed or is not configured"""


class WeatherService:
    """Current conditions and short forecasts for a coordinate"""

    def __init__(
        self,
        api_key: Optional[str] = None,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None
    ):
        self.api_key = api_key if api_key is not None else settings.OPENWEATHER_API_KEY
        self.base_url = base_url or settings.OPENWEATHER_BASE_URL
        self.http_client = httpx.AsyncClient(
            timeout=timeout or settings.WEATHER_TIMEOUT_SECONDS,
            transport=transport,
            headers={"Accept": "application/json", "User-Agent": "AgriTech-Backend/1.0"}
        )
        if not self.api_key:
            logger.warning("OPENWEATHER_API_KEY is not set. Weather lookups will fail.")

    async def close(self):
        await self.http_client.aclose()

    @staticmethod
    def validate_coordinates(lat: float, lon: float) -> bool:
        return -90 <= lat <= 90 and -180 <= lon <= 180

    async def _call(self, params: dict, path: str = "") -> dict:
        if not self.api_key:
            raise WeatherServiceError("OpenWeather API key is not configured")

        try:
            response = await self.http_client.get(f"{self.base_url}{path}", params={**params, "appid": self.api_key})
            response.raise_for_status()
            data = response.json()
        except httpx.HTTPStatusError as e:
            code = e.response.status_code
            if code == 401:
                raise WeatherServiceError("Invalid OpenWeather API key") from e
            if code == 429:
                raise WeatherServiceError("OpenWeather API rate limit exceeded") from e
            if code == 404:
                raise WeatherServiceError("Weather data not found for the specified location") from e
            if code == 400:
                try:
                    detail = e.response.json().get("message", "")
                except ValueError:
                    detail = e.response.text
                raise WeatherServiceError(f"Invalid parameters: {detail}") from e
            raise WeatherServiceError(f"OpenWeather API Error: HTTP {code}") from e
        except httpx.TimeoutException as e:
            raise WeatherServiceError("Request timeout - OpenWeather API is not responding") from e
        except httpx.HTTPError as e:
            raise WeatherServiceError(f"Unable to connect to OpenWeather API: {e}") from e
        except ValueError as e:
            raise WeatherServiceError("Empty response from OpenWeather API") from e

        if not data:
            raise WeatherServiceError("Empty response from OpenWeather API")
        return data

    async def get_current_weather(self, lat: float, lon: float, lang: Optional[str] = None) -> dict:
        """Raw One Call payload (current, hourly, daily)"""
        return await self._call({
            "lat": lat,
            "lon": lon,
            "units": "metric",
            "lang": lang or settings.WEATHER_LANG,
        })

    async def get_weather_overview(self, lat: float, lon: float, lang: Optional[str] = None) -> dict:
        """Current conditions plus the next 7 days and 24 hours"""
        data = await self.get_current_weather(lat, lon, lang)
        return {
            "location": {
                "lat": lat,
                "lon": lon,
                "timezone": data.get("timezone"),
                "timezone_offset": data.get("timezone_offset"),
            },
            "current": data.get("current"),
            "daily": (data.get("daily") or [])[:7],
            "hourly": (data.get("hourly") or [])[:24],
        }

    async def get_weather_for_timestamp(self, lat: float, lon: float, dt: int, lang: Optional[str] = None) -> dict:
        """Conditions at a unix timestamp (One Call timemachine)"""
        return await self._call({
            "lat": lat,
            "lon": lon,
            "dt": int(dt),
            "units": "metric",
            "lang": lang or settings.WEATHER_LANG,
        }, path="/timemachine")

    async def get_daily_aggregation(self, lat: float, lon: float, date: str, lang: Optional[str] = None) -> dict:
        """Aggregated figures for one calendar day, date as YYYY-MM-DD (One Call day_summary)"""
        return await self._call({
            "lat": lat,
            "lon": lon,
            "date": date,
            "units": "metric",
            "lang": lang or settings.WEATHER_LANG,
        }, path="/day_summary")


weather_service = WeatherService()
