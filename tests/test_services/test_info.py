"""Tests for the info package (time, weather, name day)."""

from datetime import date, datetime

import pytest

from voxmenu.services.info import InfoProviderError, InfoReporter
from voxmenu.services.info.nameday import NameDayClient, parse_names
from voxmenu.services.info.weather import WeatherClient, WeatherReport, describe_weather_code

FIXED_NOW = datetime(2024, 5, 1, 9, 5)


class StubWeather:
    def __init__(self, report: WeatherReport | None = None, error: Exception | None = None) -> None:
        self.report = report
        self.error = error

    async def current(self) -> WeatherReport:
        if self.error is not None:
            raise self.error
        return self.report

    async def close(self) -> None:
        pass


class StubNameDay:
    def __init__(self, names: list[str] | None = None, error: Exception | None = None) -> None:
        self.names = names or []
        self.error = error
        self.days: list[date] = []

    async def names_for(self, day: date) -> list[str]:
        self.days.append(day)
        if self.error is not None:
            raise self.error
        return self.names

    async def close(self) -> None:
        pass


class TestWeather:
    """Tests for weather parsing."""

    @pytest.mark.parametrize(
        ("code", "text"),
        [(0, "clear"), (3, "overcast"), (45, "foggy"), (63, "raining"), (75, "snowing"), (95, "stormy"), (42, "cloudy")],
    )
    def test_describe_code(self, code: int, text: str) -> None:
        assert describe_weather_code(code) == text

    def test_report_text(self) -> None:
        report = WeatherReport(city="Karviná", temperature=12.5, code=2)
        assert report.to_text() == "In Karviná it is 12.5 degrees Celsius and partly cloudy."

    def test_whole_degrees(self) -> None:
        assert "it is 7 degrees" in WeatherReport(city="X", temperature=7.0, code=0).to_text()

    @pytest.mark.asyncio
    async def test_current(self, settings, monkeypatch) -> None:
        client = WeatherClient(settings)
        seen = {}

        async def fake_get_json(url, params=None):
            seen.update(params)
            return {"current_weather": {"temperature": 18.2, "weathercode": 61}}

        monkeypatch.setattr(client, "_get_json", fake_get_json)

        report = await client.current()

        assert report.temperature == 18.2
        assert report.condition == "raining"
        assert report.city == settings.weather_city
        assert seen["current_weather"] == "true"

    @pytest.mark.asyncio
    async def test_malformed_response(self, settings, monkeypatch) -> None:
        client = WeatherClient(settings)

        async def fake_get_json(url, params=None):
            return {"unexpected": True}

        monkeypatch.setattr(client, "_get_json", fake_get_json)

        with pytest.raises(InfoProviderError):
            await client.current()


class TestNameDay:
    def test_parse_list(self) -> None:
        data = [{"date": "0105", "name": "Svátek práce"}, {"date": "0105", "name": " Pavla "}]
        assert parse_names(data) == ["Svátek práce", "Pavla"]

    def test_parse_single_object(self) -> None:
        assert parse_names({"date": "0205", "name": "Zikmund"}) == ["Zikmund"]

    def test_parse_skips_junk(self) -> None:
        assert parse_names([{"date": "0105"}, "x", {"name": ""}]) == []

    def test_parse_rejects_other_shapes(self) -> None:
        with pytest.raises(InfoProviderError):
            parse_names("nope")

    @pytest.mark.asyncio
    async def test_names_for_sends_ddmm(self, settings, monkeypatch) -> None:
        client = NameDayClient(settings)
        seen = {}

        async def fake_get_json(url, params=None):
            seen.update(params)
            return [{"date": "0305", "name": "Alexej"}]

        monkeypatch.setattr(client, "_get_json", fake_get_json)

        assert await client.names_for(date(2024, 5, 3)) == ["Alexej"]
        assert seen == {"date": "0305"}


class TestInfoReporter:
    """Tests for the combined info text."""

    @pytest.mark.asyncio
    async def test_full_report(self, settings) -> None:
        nameday = StubNameDay(["Pavla", "Filip"])
        reporter = InfoReporter(
            settings,
            weather=StubWeather(WeatherReport(city="Karviná", temperature=15, code=0)),
            nameday=nameday,
            clock=lambda: FIXED_NOW,
        )

        text = await reporter.build()

        assert text == (
            "The time is 09:05. "
            "In Karviná it is 15 degrees Celsius and clear. "
            "Today's name day: Pavla and Filip."
        )
        assert nameday.days == [date(2024, 5, 1)]

    @pytest.mark.asyncio
    async def test_failed_parts_are_dropped(self, settings) -> None:
        reporter = InfoReporter(
            settings,
            weather=StubWeather(error=InfoProviderError("timeout", "weather")),
            nameday=StubNameDay(error=InfoProviderError("503", "nameday")),
            clock=lambda: FIXED_NOW,
        )

        assert await reporter.build() == "The time is 09:05."

    @pytest.mark.asyncio
    async def test_no_names_today(self, settings) -> None:
        reporter = InfoReporter(
            settings,
            weather=StubWeather(WeatherReport(city="Brno", temperature=-2, code=71)),
            nameday=StubNameDay([]),
            clock=lambda: FIXED_NOW,
        )

        text = await reporter.build()

        assert text.endswith("and snowing.")
        assert "name day" not in text
