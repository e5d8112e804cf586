"""
在线时长插件

- !uptime 回复在线时长
- 响应 CTCP VERSION / TIME
- 统计 join 事件，每 interval 秒记录一次心跳日志
"""

import re
import time

from logger_config import get_logger
from plugin_base import BotPlugin

logger = get_logger("UptimePlugin")

VERSION = "botplug uptime 1.0.0"


class Uptime(BotPlugin):
    def __init__(self, bot):
        self.started_at = time.time()
        self.joins = 0
        self.handled = 0
        super().__init__(bot)

    def execute(self, m):
        m.reply(f"已在线 {self.uptime()} 秒")

    def on_join(self, m):
        with self.synchronize("uptime"):
            self.joins += 1

    def ctcp_version(self, m):
        m.reply(f"VERSION {VERSION}")

    def ctcp_time(self, m):
        m.reply(f"TIME {time.strftime('%Y-%m-%d %H:%M:%S')}")

    def tick(self):
        logger.info("在线 %s 秒，处理 %s 条指令，join %s 次", self.uptime(), self.handled, self.joins)

    def count(self, m):
        with self.synchronize("uptime"):
            self.handled += 1

    def uptime(self) -> int:
        return int(time.time() - self.started_at)


Uptime.match(re.compile(r"uptime$"))
Uptime.listen_to("join", method="on_join")
Uptime.ctcp("version")
Uptime.ctcp("time")
Uptime.timer(300, method="tick")
Uptime.hook("post", for_=["match", "ctcp"], method="count")
