"""Spoken info package: current time, weather and today's name day.

Each part degrades independently; a failed lookup drops its sentence and
the rest is still spoken.
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable
from datetime import datetime
from typing import Any

from voxmenu.config import Settings, get_settings
from voxmenu.logging_config import get_logger
from voxmenu.services.info.exceptions import InfoProviderError
from voxmenu.services.info.nameday import NameDayClient
from voxmenu.services.info.weather import WeatherClient

logger: Any = get_logger(__name__)


class InfoReporter:
    """Builds the info package text."""

    def __init__(
        self,
        settings: Settings | None = None,
        *,
        weather: WeatherClient | None = None,
        nameday: NameDayClient | None = None,
        clock: Callable[[], datetime] = datetime.now,
    ) -> None:
        self._settings = settings or get_settings()
        self._weather = weather or WeatherClient(self._settings)
        self._nameday = nameday or NameDayClient(self._settings)
        self._clock = clock

    async def _weather_sentence(self) -> str:
        try:
            report = await self._weather.current()
        except InfoProviderError as e:
            logger.warning(f"Weather unavailable: {e}")
            return ""
        return report.to_text()

    async def _nameday_sentence(self, now: datetime) -> str:
        try:
            names = await self._nameday.names_for(now.date())
        except InfoProviderError as e:
            logger.warning(f"Name day unavailable: {e}")
            return ""
        if not names:
            return ""
        return f"Today's name day: {' and '.join(names)}."

    async def build(self) -> str:
        now = self._clock()
        weather, nameday = await asyncio.gather(
            self._weather_sentence(),
            self._nameday_sentence(now),
        )
        parts = [f"The time is {now:%H:%M}.", weather, nameday]
        return " ".join(part for part in parts if part)

    async def close(self) -> None:
        await self._weather.close()
        await self._nameday.close()
