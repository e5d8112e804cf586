"""
天气查询服务
通过 HTTP JSON 接口查询城市当前天气（默认 wttr.in 格式）
"""

import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry
from logger_config import get_logger

logger = get_logger("WeatherQuery")

_DEFAULT_CONFIG = {
    "api_url": "https://wttr.in/{city}",
    "proxy": "",
    "timeout": 10,
}


class WeatherService:
    """天气查询处理器"""

    _MAX_RETRIES = 2

    def __init__(self, config: dict | None = None):
        self._config = _DEFAULT_CONFIG.copy()
        if config:
            self._config.update(config)

        self._api_url = self._config.get("api_url", "")
        proxy = self._config.get("proxy", "")
        # 指定了代理则使用指定的，否则传 None 让 requests 自动读取系统代理
        self._proxies = {"http": proxy, "https": proxy} if proxy else None
        self._session = self._build_session()

    def _build_session(self) -> requests.Session:
        """构建带自动重试的 requests Session。"""
        session = requests.Session()
        retry_strategy = Retry(
            total=self._MAX_RETRIES,
            backoff_factor=1,
            status_forcelist=[502, 503, 504],
        )
        adapter = HTTPAdapter(max_retries=retry_strategy)
        session.mount("https://", adapter)
        session.mount("http://", adapter)
        return session

    def close(self) -> None:
        self._session.close()

    def lookup(self, city: str) -> dict:
        """
        查询城市当前天气。

        Returns:
            {"ok": True, "data": {...}} 或 {"ok": False, "error": "..."}
        """
        url = self._api_url.format(city=requests.utils.quote(city))
        try:
            resp = self._session.get(
                url,
                params={"format": "j1"},
                proxies=self._proxies,
                timeout=self._config.get("timeout", 10),
            )
            resp.raise_for_status()
            return {"ok": True, "data": resp.json()}
        except requests.Timeout:
            logger.warning("天气查询超时: city=%s", city)
            return {"ok": False, "error": "查询超时，请稍后再试"}
        except requests.RequestException as e:
            logger.warning("天气查询失败: city=%s, %s", city, e)
            return {"ok": False, "error": "连接异常，请稍后再试"}
        except ValueError:
            logger.warning("天气接口返回了非 JSON 内容: city=%s", city)
            return {"ok": False, "error": "接口返回格式错误"}

    def query_and_format(self, city: str) -> str:
        """查询并格式化为可发送的消息文本。"""
        city = (city or "").strip()
        if not city:
            return "请输入城市名，例如: !weather Beijing"

        result = self.lookup(city)
        if not result["ok"]:
            return f"查询失败: {result['error']}"

        current = (result["data"].get("current_condition") or [{}])[0]
        desc = (current.get("weatherDesc") or [{}])[0].get("value", "未知")
        temp = current.get("temp_C", "?")
        humidity = current.get("humidity", "?")
        return f"{city}: {desc}, {temp}°C, 湿度 {humidity}%"
