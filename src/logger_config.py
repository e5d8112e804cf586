"""
日志配置
统一的 logger 获取入口：控制台 + 按大小轮转的文件日志
"""

import logging
import os
from logging.handlers import RotatingFileHandler

try:
    from config import LOG_CONFIG
except ImportError:
    LOG_CONFIG = {}

_PROJECT_ROOT = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
LOG_DIR = os.path.join(_PROJECT_ROOT, LOG_CONFIG.get("dir", "logs"))

_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
_ROOT_NAME = "botplug"


def _level() -> int:
    name = str(LOG_CONFIG.get("level", "INFO")).upper()
    return getattr(logging, name, logging.INFO)


def setup_logger(name: str) -> logging.Logger:
    """
    初始化根 logger（仅入口调用一次），返回名为 name 的子 logger。
    file_enabled=False 时只输出到控制台。
    """
    root = logging.getLogger(_ROOT_NAME)
    root.setLevel(_level())
    if not root.handlers:
        formatter = logging.Formatter(_FORMAT)

        console = logging.StreamHandler()
        console.setFormatter(formatter)
        root.addHandler(console)

        if LOG_CONFIG.get("file_enabled", True):
            os.makedirs(LOG_DIR, exist_ok=True)
            file_handler = RotatingFileHandler(
                os.path.join(LOG_DIR, "bot.log"),
                maxBytes=LOG_CONFIG.get("max_bytes", 5 * 1024 * 1024),
                backupCount=LOG_CONFIG.get("backup_count", 3),
                encoding="utf-8",
            )
            file_handler.setFormatter(formatter)
            root.addHandler(file_handler)
    return get_logger(name)


def get_logger(name: str) -> logging.Logger:
    """获取模块 logger，挂在统一根 logger 之下。"""
    return logging.getLogger(f"{_ROOT_NAME}.{name}")
