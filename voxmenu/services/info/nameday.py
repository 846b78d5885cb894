"""Name day lookup."""

from __future__ import annotations

from datetime import date
from typing import Any

from voxmenu.config import Settings, get_settings
from voxmenu.logging_config import get_logger
from voxmenu.services.info.exceptions import InfoProviderError
from voxmenu.services.info.http import JsonHttpClient

logger: Any = get_logger(__name__)


def parse_names(data: Any) -> list[str]:
    """Extract names from a name day response.

    The API answers with a list of `{"date": "DDMM", "name": "..."}`
    objects; a single object is accepted too.
    """
    if isinstance(data, dict):
        data = [data]
    if not isinstance(data, list):
        raise InfoProviderError("Unexpected name day response", provider="nameday")
    names = []
    for item in data:
        if isinstance(item, dict) and isinstance(item.get("name"), str) and item["name"].strip():
            names.append(item["name"].strip())
    return names


class NameDayClient(JsonHttpClient):
    """Czech name day calendar (svatky.adresa.info)."""

    provider = "nameday"

    def __init__(self, settings: Settings | None = None) -> None:
        self._settings = settings or get_settings()
        super().__init__(self._settings.info_timeout_seconds)

    async def names_for(self, day: date) -> list[str]:
        data = await self._get_json(
            self._settings.nameday_url,
            params={"date": day.strftime("%d%m")},
        )
        names = parse_names(data)
        logger.debug(f"Name day {day:%d.%m.}: {names}")
        return names
