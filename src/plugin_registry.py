"""
插件宿主：订阅登记、按序分发、错误隔离

- 插件实例化时经 plugin_binder 调用 on() 登记订阅，分发时按登记顺序依次调用
- 单个订阅异常仅记录日志，不中断其它插件与事件循环
- 提供具名锁（synchronize）、重复定时器与插件专属选项存储
"""

import re
import threading
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Any, Callable, Iterator, Optional

from logger_config import get_logger
from pattern import Pattern

logger = get_logger("PluginRegistry")

try:
    from config import PLUGIN_CONFIG
except ImportError:
    PLUGIN_CONFIG = {"prefix": "!", "suffix": None}


@dataclass
class Message:
    """宿主投递给插件的消息。reply() 的内容记录在 replies 中并转交 on_reply。"""
    text: str = ""
    user: Optional[str] = None
    channel: Optional[str] = None
    ctcp_command: Optional[str] = None
    on_reply: Optional[Callable[[str], Any]] = None
    replies: list = field(default_factory=list)

    def reply(self, text: str) -> None:
        self.replies.append(text)
        if self.on_reply:
            self.on_reply(text)


@dataclass
class Subscription:
    category: Any
    pattern: Any
    handler: Callable
    args: tuple = ()
    owner: Optional[str] = None


class RepeatingTimer:
    """每 interval 秒调用一次 callback，直到 stop()。threaded=True 时每次回调另起线程。"""

    def __init__(self, interval: float, callback: Callable, threaded: bool = True):
        self.interval = interval
        self.callback = callback
        self.threaded = threaded
        self._stopped = threading.Event()
        self._thread: Optional[threading.Thread] = None

    def start(self) -> "RepeatingTimer":
        self._thread = threading.Thread(target=self._loop, daemon=True)
        self._thread.start()
        return self

    def stop(self) -> None:
        self._stopped.set()

    @property
    def running(self) -> bool:
        return self._thread is not None and not self._stopped.is_set()

    def _loop(self) -> None:
        while not self._stopped.wait(self.interval):
            if self.threaded:
                threading.Thread(target=self._fire, daemon=True).start()
            else:
                self._fire()

    def _fire(self) -> None:
        try:
            self.callback()
        except Exception as e:
            logger.exception("PluginRegistry: 定时器回调 %r 异常: %s", self.callback, e)


class PluginRegistry:
    """插件宿主：持有订阅、插件实例与插件选项。"""

    def __init__(
        self,
        prefix: Any = None,
        suffix: Any = None,
        options: Optional[dict] = None,
    ) -> None:
        self.plugin_prefix = prefix if prefix is not None else PLUGIN_CONFIG.get("prefix")
        self.plugin_suffix = suffix if suffix is not None else PLUGIN_CONFIG.get("suffix")
        self._options: dict = dict(options or {})  # 插件类 -> 选项字典
        self._subscriptions: list[Subscription] = []
        self._plugins: dict[str, Any] = {}
        self._order: list[str] = []
        self._timers: list[RepeatingTimer] = []
        self._locks: dict[Any, threading.Lock] = {}
        self._locks_guard = threading.Lock()
        self._binding_owner: Optional[str] = None

    # ------------------------------------------------------------------
    # 绑定协议
    # ------------------------------------------------------------------

    def on(self, category: Any, pattern: Any, handler: Callable, *args: Any) -> Subscription:
        sub = Subscription(category, pattern, handler, args, self._binding_owner)
        self._subscriptions.append(sub)
        return sub

    @contextmanager
    def binding(self, name: str) -> Iterator[None]:
        """在此上下文中登记的订阅归属于插件 name，unregister 时一并移除。"""
        self._binding_owner = name
        try:
            yield
        finally:
            self._binding_owner = None

    def plugin_options(self, plugin_class: type) -> Optional[dict]:
        return self._options.get(plugin_class)

    def set_plugin_options(self, plugin_class: type, options: dict) -> None:
        self._options[plugin_class] = dict(options or {})

    @contextmanager
    def synchronize(self, name: Any) -> Iterator[None]:
        with self._locks_guard:
            lock = self._locks.setdefault(name, threading.Lock())
        with lock:
            yield

    def schedule_timer(self, interval: float, callback: Callable, threaded: bool = True) -> RepeatingTimer:
        timer = RepeatingTimer(interval, callback, threaded).start()
        self._timers.append(timer)
        logger.debug("PluginRegistry: 已调度定时器 interval=%s callback=%r", interval, callback)
        return timer

    # ------------------------------------------------------------------
    # 分发
    # ------------------------------------------------------------------

    def subscriptions(self, category: Any = None) -> list[Subscription]:
        if category is None:
            return list(self._subscriptions)
        return [s for s in self._subscriptions if s.category == category]

    def _captures(self, sub: Subscription, message: Any) -> Optional[tuple]:
        """返回匹配到的捕获组；不匹配时返回 None。"""
        if sub.pattern is None:
            return ()
        if isinstance(sub.pattern, Pattern):
            m = sub.pattern.match(getattr(message, "text", ""), message)
            return m.groups() if m else None
        if isinstance(sub.pattern, re.Pattern):
            m = sub.pattern.search(getattr(message, "text", ""))
            return m.groups() if m else None
        # CTCP 等以字符串为匹配条件
        command = getattr(message, "ctcp_command", None) or ""
        return () if command.upper() == str(sub.pattern).upper() else None

    def dispatch(self, category: Any, message: Any = None, *args: Any) -> int:
        """
        向 category 的全部订阅投递 message。
        返回被调用的处理器数量；单个处理器异常仅打日志并继续。
        """
        called = 0
        for sub in self.subscriptions(category):
            captures = self._captures(sub, message)
            if captures is None:
                continue
            called += 1
            try:
                sub.handler(message, *sub.args, *args, *captures)
            except Exception as e:
                logger.exception("PluginRegistry: 处理 %s 事件异常: %s", category, e)
        return called

    def fire_connect(self) -> int:
        """连接建立后调用；可多次触发（重连），插件定时器只调度一次。"""
        return self.dispatch("connect")

    # ------------------------------------------------------------------
    # 插件登记
    # ------------------------------------------------------------------

    def register(self, name: str, plugin: Any) -> bool:
        """记录已实例化的插件。同名已存在时拒绝登记，需先 unregister。"""
        if not name.strip():
            logger.warning("PluginRegistry: 拒绝登记无 name 的插件")
            return False
        if name in self._plugins:
            logger.warning("PluginRegistry: 插件 %s 已登记，拒绝重复登记", name)
            return False
        self._plugins[name] = plugin
        self._order.append(name)
        return True

    def unregister(self, name: str) -> bool:
        """移除插件及其全部订阅，并调用插件的 on_unload。"""
        plugin = self._plugins.pop(name, None)
        if plugin is None:
            return False
        self._order = [n for n in self._order if n != name]
        self.remove_subscriptions(name, plugin)
        on_unload = getattr(plugin, "on_unload", None)
        if on_unload is not None:
            try:
                on_unload()
            except Exception as e:
                logger.exception("PluginRegistry: 插件 %s on_unload 异常: %s", name, e)
        return True

    def remove_subscriptions(self, name: str, plugin: Any = None) -> int:
        """移除归属于 name（或以 plugin 为绑定参数）的订阅，返回移除数量。"""
        before = len(self._subscriptions)
        self._subscriptions = [
            s for s in self._subscriptions
            if s.owner != name and (plugin is None or plugin not in s.args)
        ]
        return before - len(self._subscriptions)

    def get(self, name: str) -> Optional[Any]:
        return self._plugins.get(name)

    def list_all(self) -> list[dict]:
        """返回已登记插件信息，用于插件列表展示。"""
        result = []
        for name in self._order:
            plugin = self._plugins.get(name)
            if plugin is None:
                continue
            desc = type(plugin).descriptor()
            result.append({
                "name": name,
                "help": desc.help or "",
                "matchers": len(desc.matchers),
                "listeners": len(desc.listeners),
                "timers": len(desc.timers),
                "ctcps": list(desc.ctcps),
                "registered": getattr(plugin, "registered", True),
            })
        return result

    def stop(self) -> None:
        for timer in self._timers:
            timer.stop()
        self._timers.clear()

    def __len__(self) -> int:
        return len(self._plugins)

    def __contains__(self, name: str) -> bool:
        return name in self._plugins
