"""Info providers for the spoken info package (weather, name day)."""

from voxmenu.services.info.exceptions import InfoProviderError
from voxmenu.services.info.nameday import NameDayClient, parse_names
from voxmenu.services.info.report import InfoReporter
from voxmenu.services.info.weather import WeatherClient, WeatherReport, describe_weather_code

__all__ = [
    "InfoReporter",
    "WeatherClient",
    "WeatherReport",
    "NameDayClient",
    "describe_weather_code",
    "parse_names",
    "InfoProviderError",
]
