import json
import os
import sys
import tempfile
import unittest
from unittest.mock import MagicMock, patch

import requests


ROOT = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
SRC = os.path.join(ROOT, "src")
for path in (SRC, ROOT):
    if path not in sys.path:
        sys.path.insert(0, path)

from plugin_loader import load_plugin, unload_plugin  # noqa: E402
from plugin_registry import Message, PluginRegistry  # noqa: E402
from plugins._weather_service import WeatherService  # noqa: E402


SAMPLE = {
    "current_condition": [
        {"temp_C": "21", "humidity": "40", "weatherDesc": [{"value": "Sunny"}]},
    ],
}


class WeatherServiceTests(unittest.TestCase):
    def setUp(self):
        self.service = WeatherService({"api_url": "https://example.test/{city}"})
        self.service._session = MagicMock()

    def test_format_current_condition(self):
        resp = MagicMock()
        resp.json.return_value = SAMPLE
        self.service._session.get.return_value = resp

        text = self.service.query_and_format("Beijing")

        self.assertEqual(text, "Beijing: Sunny, 21°C, 湿度 40%")
        url = self.service._session.get.call_args.args[0]
        self.assertEqual(url, "https://example.test/Beijing")

    def test_city_is_quoted(self):
        resp = MagicMock()
        resp.json.return_value = SAMPLE
        self.service._session.get.return_value = resp
        self.service.query_and_format("New York")
        self.assertEqual(
            self.service._session.get.call_args.args[0],
            "https://example.test/New%20York",
        )

    @patch("plugins._weather_service.logger.warning")
    def test_timeout_returns_friendly_error(self, _mock_warning):
        self.service._session.get.side_effect = requests.Timeout()
        self.assertEqual(self.service.query_and_format("Beijing"), "查询失败: 查询超时，请稍后再试")

    @patch("plugins._weather_service.logger.warning")
    def test_non_json_response(self, _mock_warning):
        resp = MagicMock()
        resp.json.side_effect = ValueError("no json")
        self.service._session.get.return_value = resp
        result = self.service.lookup("Beijing")
        self.assertFalse(result["ok"])

    def test_empty_city(self):
        self.assertTrue(self.service.query_and_format("  ").startswith("请输入城市名"))
        self.service._session.get.assert_not_called()


class WeatherPluginTests(unittest.TestCase):
    def setUp(self):
        self._tmp = tempfile.TemporaryDirectory()
        self.registry = PluginRegistry(prefix="!")

    def tearDown(self):
        unload_plugin(self.registry, "weather")
        self._tmp.cleanup()

    def _write_options(self, options):
        with open(os.path.join(self._tmp.name, "weather.json"), "w", encoding="utf-8") as f:
            json.dump(options, f)

    def test_requires_api_url(self):
        with patch("plugin_binder.logger.warning"):
            ok, msg = load_plugin(self.registry, "weather", config_dir=self._tmp.name)
        self.assertFalse(ok)
        self.assertIn("api_url", msg)

    @patch.object(WeatherService, "query_and_format", return_value="Beijing: Sunny")
    def test_command_replies_with_weather(self, mock_query):
        self._write_options({"api_url": "https://example.test/{city}"})
        ok, msg = load_plugin(self.registry, "weather", config_dir=self._tmp.name)
        self.assertTrue(ok, msg)

        m = Message(text="!weather Beijing")
        self.registry.dispatch("message", m)

        self.assertEqual(m.replies, ["Beijing: Sunny"])
        mock_query.assert_called_once_with("Beijing")

    @patch.object(WeatherService, "close")
    @patch.object(WeatherService, "query_and_format", return_value="ok")
    def test_unload_closes_session(self, _mock_query, mock_close):
        self._write_options({"api_url": "https://example.test/{city}"})
        load_plugin(self.registry, "weather", config_dir=self._tmp.name)
        self.registry.dispatch("message", Message(text="!weather Beijing"))

        ok, _ = unload_plugin(self.registry, "weather")

        self.assertTrue(ok)
        mock_close.assert_called_once_with()

    def test_help(self):
        self._write_options({"api_url": "https://example.test/{city}"})
        load_plugin(self.registry, "weather", config_dir=self._tmp.name)
        m = Message(text="!help weather")
        self.registry.dispatch("message", m)
        self.assertEqual(len(m.replies), 1)
        self.assertIn("!weather", m.replies[0])


if __name__ == "__main__":
    unittest.main()
