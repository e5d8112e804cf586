"""
插件基类与声明接口

所有插件继承 BotPlugin，在类定义之后用类方法声明要处理的事件：

    class Weather(BotPlugin):
        def execute(self, m, city):
            m.reply(...)

    Weather.set(help="!weather <城市>", prefix="!")
    Weather.match(re.compile(r"weather (\\w+)"))

实例化 Weather(host) 时由 plugin_binder 一次性完成注册。
"""

from contextlib import AbstractContextManager
from typing import Any, Callable, Optional, Union

from logger_config import get_logger
from plugin_binder import register_with_host
from plugin_descriptor import (
    HOOK_EVENTS,
    Hook,
    InvalidArgumentError,
    Listener,
    Match,
    PluginDescriptor,
    Timer,
)

logger = get_logger("PluginBase")

_UNSET = object()


def _deprecated(cls: type, name: str) -> None:
    logger.warning(
        "Deprecation warning: %s.%s should not be used to set options anymore, use set() instead.",
        cls.__name__,
        name,
    )


class BotPlugin:
    """
    插件基类。

    类侧：声明接口（set / match / listen_to / ctcp / timer / hook）与描述符。
    实例侧：持有宿主引用，提供 synchronize、config、schedule_timer 以及默认的 listen/execute。
    """

    # ------------------------------------------------------------------
    # 描述符
    # ------------------------------------------------------------------

    @classmethod
    def descriptor(cls) -> PluginDescriptor:
        """当前类自己的描述符，首次访问时创建，不与父类或子类共享。"""
        desc = cls.__dict__.get("_descriptor")
        if desc is None:
            desc = PluginDescriptor(cls.__qualname__.split(".")[-1].lower())
            cls._descriptor = desc
        return desc

    # ------------------------------------------------------------------
    # 声明接口
    # ------------------------------------------------------------------

    @classmethod
    def set(cls, *args: Any, **kwargs: Any) -> None:
        """
        设置标量选项：set(key, value)、set({key: value, ...}) 或 set(key=value, ...)。
        可用 key：help、plugin_name、prefix、suffix、react_on、required_options。
        """
        desc = cls.descriptor()
        if args and kwargs:
            raise InvalidArgumentError("set() takes either positional or keyword arguments, not both")
        if kwargs:
            items = kwargs.items()
        elif len(args) == 1 and isinstance(args[0], dict):
            items = args[0].items()
        elif len(args) == 2:
            items = [(args[0], args[1])]
        else:
            raise InvalidArgumentError(f"set() expects (key, value) or a mapping, got {len(args)} argument(s)")
        for key, value in items:
            desc.set_option(str(key), value)

    @classmethod
    def match(
        cls,
        pattern: Any,
        use_prefix: bool = True,
        use_suffix: bool = True,
        method: str = "execute",
        arity: Optional[int] = None,
    ) -> Match:
        """添加匹配规则。arity 可显式指定处理方法接收的捕获参数个数（-1 为全部）。"""
        return cls.descriptor().add_match(Match(pattern, use_prefix, use_suffix, method, arity))

    @classmethod
    def listen_to(cls, *events: Any, method: str = "listen") -> list:
        """
        监听原始事件：IRC 命令名、数字回复，或 channel / private / message / error / ctcp / action。
        兼容末尾传入 {"method": ...} 字典。
        """
        events = list(events)
        if events and isinstance(events[-1], dict):
            method = events.pop().get("method", method)
        desc = cls.descriptor()
        return [desc.add_listener(Listener(event, method)) for event in events]

    @classmethod
    def ctcp(cls, command: Any) -> str:
        return cls.descriptor().add_ctcp(command)

    on_command = ctcp

    @classmethod
    def timer(
        cls,
        interval: float,
        method: str = "timer",
        threaded: bool = True,
        block: Optional[Callable[..., Any]] = None,
    ) -> Timer:
        """每 interval 秒调用一次 method（或 block）。首次 connect 时才真正调度。"""
        return cls.descriptor().add_timer(Timer(interval, block or method, threaded, False))

    # 子类定义了名为 timer 的处理方法时会遮蔽上面的类方法，此时用 every 声明
    every = timer

    @classmethod
    def hook(cls, type: str, options: Optional[dict] = None, **kwargs: Any) -> Hook:
        """
        在处理方法前（pre）或后（post）运行的钩子。
        for_ 指定适用的事件类别（match / listen_to / ctcp），也可经 options={"for": [...]} 传入。
        """
        opts = {"for": HOOK_EVENTS, "method": "hook"}
        opts.update(options or {})
        if "for_" in kwargs:
            kwargs["for"] = kwargs.pop("for_")
        opts.update(kwargs)
        events = opts["for"]
        if isinstance(events, str):
            events = (events,)
        return cls.descriptor().add_hook(Hook(type, tuple(events), opts["method"]))

    # 同理，处理方法名为 hook 时用 add_hook 声明
    add_hook = hook

    # ------------------------------------------------------------------
    # 兼容旧写法：无参为取值，带参为设值（已弃用）
    # ------------------------------------------------------------------

    @classmethod
    def _get_or_set(cls, name: str, args: tuple) -> Any:
        if len(args) > 1:
            raise InvalidArgumentError(f"{name}() takes at most one argument")
        desc = cls.descriptor()
        if not args:
            return getattr(desc, name)
        _deprecated(cls, name)
        desc.set_option(name, args[0])
        return None

    @classmethod
    def help(cls, *args: Any) -> Optional[str]:
        return cls._get_or_set("help", args)

    @classmethod
    def react_on(cls, *args: Any) -> Optional[str]:
        return cls._get_or_set("react_on", args)

    @classmethod
    def plugin_name(cls, *args: Any) -> Optional[str]:
        return cls._get_or_set("plugin_name", args)

    plugin = plugin_name

    @classmethod
    def required_options(cls, *args: Any) -> Optional[list]:
        return cls._get_or_set("required_options", args)

    @classmethod
    def prefix(cls, value: Any = _UNSET, block: Optional[Callable] = None) -> Any:
        if value is _UNSET and block is None:
            return cls.descriptor().prefix
        _deprecated(cls, "prefix")
        cls.descriptor().set_option("prefix", block if value is _UNSET else value)
        return None

    @classmethod
    def suffix(cls, value: Any = _UNSET, block: Optional[Callable] = None) -> Any:
        if value is _UNSET and block is None:
            return cls.descriptor().suffix
        _deprecated(cls, "suffix")
        cls.descriptor().set_option("suffix", block if value is _UNSET else value)
        return None

    # ------------------------------------------------------------------
    # 实例侧
    # ------------------------------------------------------------------

    def __init__(self, bot: Any):
        self._bot = bot
        self.missing_options = register_with_host(bot, self)

    @property
    def bot(self) -> Any:
        return self._bot

    @property
    def registered(self) -> bool:
        """必需选项齐全、已向宿主注册时为 True。"""
        return not self.missing_options

    def synchronize(self, name: Any) -> AbstractContextManager:
        """宿主的具名互斥锁：with self.synchronize("db"): ..."""
        return self._bot.synchronize(name)

    def config(self) -> dict:
        """本插件类型的专属选项，未配置时为空字典。"""
        return self._bot.plugin_options(type(self)) or {}

    def schedule_timer(
        self,
        interval: float,
        method: Union[str, Callable[..., Any]] = "timer",
        threaded: bool = True,
    ) -> Any:
        """立即在宿主上调度重复定时器；method 为方法名时解析为本实例的方法。"""
        callback = method if callable(method) else getattr(self, method)
        return self._bot.schedule_timer(interval, callback, threaded=threaded)

    def on_unload(self) -> None:
        """从宿主卸载时调用，用于释放插件持有的资源。"""
        pass

    def listen(self, *args: Any) -> None:
        logger.warning(
            "Warning: The plugin '%s' is missing the method 'listen'",
            type(self).descriptor().plugin_name,
        )

    def execute(self, *args: Any) -> None:
        logger.warning(
            "Warning: The plugin '%s' is missing the method 'execute'",
            type(self).descriptor().plugin_name,
        )

    def __repr__(self) -> str:
        return f"<Plugin {type(self).descriptor().plugin_name}>"
