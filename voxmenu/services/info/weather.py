"""Current weather from Open-Meteo."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from voxmenu.config import Settings, get_settings
from voxmenu.logging_config import get_logger
from voxmenu.services.info.exceptions import InfoProviderError
from voxmenu.services.info.http import JsonHttpClient

logger: Any = get_logger(__name__)

# WMO weather interpretation codes, grouped
_CONDITIONS: list[tuple[tuple[int, ...], str]] = [
    ((0,), "clear"),
    ((1,), "mostly clear"),
    ((2,), "partly cloudy"),
    ((3,), "overcast"),
    ((45, 48), "foggy"),
    ((51, 53, 55, 56, 57), "drizzling"),
    ((61, 63, 65, 66, 67, 80, 81, 82), "raining"),
    ((71, 73, 75, 77, 85, 86), "snowing"),
    ((95, 96, 99), "stormy"),
]
DEFAULT_CONDITION = "cloudy"


def describe_weather_code(code: int) -> str:
    for codes, text in _CONDITIONS:
        if code in codes:
            return text
    return DEFAULT_CONDITION


@dataclass(frozen=True, slots=True)
class WeatherReport:
    """Current conditions at the configured location."""

    city: str
    temperature: float
    code: int

    @property
    def condition(self) -> str:
        return describe_weather_code(self.code)

    def to_text(self) -> str:
        return f"In {self.city} it is {self.temperature:g} degrees Celsius and {self.condition}."


class WeatherClient(JsonHttpClient):
    """Open-Meteo `current_weather` lookup by coordinates."""

    provider = "weather"

    def __init__(self, settings: Settings | None = None) -> None:
        self._settings = settings or get_settings()
        super().__init__(self._settings.info_timeout_seconds)

    async def current(self) -> WeatherReport:
        data = await self._get_json(
            self._settings.weather_url,
            params={
                "latitude": self._settings.weather_latitude,
                "longitude": self._settings.weather_longitude,
                "current_weather": "true",
            },
        )
        try:
            current = data["current_weather"]
            report = WeatherReport(
                city=self._settings.weather_city,
                temperature=float(current["temperature"]),
                code=int(current.get("weathercode", -1)),
            )
        except (KeyError, TypeError, ValueError) as e:
            raise InfoProviderError(f"Unexpected weather response: {e}", provider=self.provider) from e

        logger.debug(f"Weather in {report.city}: {report.temperature} C, code {report.code}")
        return report
