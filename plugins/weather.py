"""
天气查询插件

配置文件：config/plugins/weather.json（必需选项 api_url）
!weather <城市>、!help weather
"""

import re

from plugin_base import BotPlugin


class Weather(BotPlugin):
    def __init__(self, bot):
        self._service = None
        super().__init__(bot)

    def _weather_service(self):
        if self._service is None:
            from ._weather_service import WeatherService
            self._service = WeatherService(self.config())
        return self._service

    def on_unload(self) -> None:
        if self._service is not None:
            self._service.close()
        self._service = None

    def execute(self, m, city):
        m.reply(self._weather_service().query_and_format(city))


Weather.set(
    help="用法: !weather <城市>，例如 !weather Beijing",
    required_options=["api_url"],
)
Weather.match(re.compile(r"weather (.+)"))
