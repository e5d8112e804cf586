"""
Bot 插件核心入口（控制台宿主）

从 plugins 目录加载插件，之后把每行输入作为 message 事件投递；
以 \\x01 开头的行视为 CTCP 请求，例如 "\\x01VERSION"。
"""

import os
import sys

sys.path.insert(0, os.path.join(os.path.dirname(os.path.abspath(__file__)), "src"))
sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)))

from logger_config import setup_logger
from plugin_loader import load_plugins_dir
from plugin_registry import Message, PluginRegistry

logger = setup_logger("Main")


def _to_message(line: str) -> tuple[str, Message]:
    on_reply = lambda text: print(f"<bot> {text}")  # noqa: E731
    if line.startswith("\x01"):
        command = line.strip("\x01").split(" ", 1)[0]
        return "ctcp", Message(text=line, user="console", ctcp_command=command, on_reply=on_reply)
    return "message", Message(text=line, user="console", on_reply=on_reply)


def main():
    logger.info("=" * 50)
    logger.info("插件宿主正在启动...")
    logger.info("=" * 50)

    registry = PluginRegistry()
    loaded = load_plugins_dir(registry)
    logger.info("已加载插件: %s", ", ".join(loaded) or "(无)")

    registry.fire_connect()

    try:
        for line in sys.stdin:
            line = line.rstrip("\n")
            if not line:
                continue
            category, message = _to_message(line)
            if not registry.dispatch(category, message):
                logger.debug("无插件处理: %s", line)
    except KeyboardInterrupt:
        logger.info("收到退出信号，正在关闭...")
    finally:
        registry.stop()

    logger.info("插件宿主已停止")


if __name__ == "__main__":
    main()
