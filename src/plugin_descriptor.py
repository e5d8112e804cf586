"""
插件描述符：一个插件类型声明的全部行为

- Match / Listener / Timer / Hook 四类规则
- 标量选项：help、prefix、suffix、react_on、plugin_name、required_options
- 钩子引擎：按阶段与事件类别筛选钩子并在实例上执行

描述符在类定义阶段被填充，绑定后只读。
"""

import threading
from dataclasses import dataclass, field
from typing import Any, Callable, Iterable, Optional, Union

HOOK_TYPES = ("pre", "post")
HOOK_EVENTS = ("match", "listen_to", "ctcp")

SETTABLE_OPTIONS = ("help", "plugin_name", "prefix", "suffix", "react_on", "required_options")

MatchPattern = Union[str, Any, Callable[[Any], Any]]


class InvalidArgumentError(ValueError):
    """声明期参数形态错误（set 及取值/设值方法）。"""


class MissingHandlerError(AttributeError):
    """插件缺少声明中引用的方法。"""

    def __init__(self, plugin_name: str, method: str):
        super().__init__(f"The plugin '{plugin_name}' is missing the method '{method}'")
        self.plugin_name = plugin_name
        self.method = method


@dataclass
class Match:
    pattern: MatchPattern
    use_prefix: bool = True
    use_suffix: bool = True
    method: str = "execute"
    # 显式声明的额外参数个数，-1 表示接受全部；None 则由方法签名推断
    arity: Optional[int] = None


@dataclass
class Listener:
    event: Union[str, int]
    method: str = "listen"


@dataclass
class Timer:
    """
    定时器规则。registered 记录在插件类型上，由该类型的全部实例共享：
    同一插件类被多个宿主加载时，只有第一个触发 connect 的宿主会调度此定时器。
    """
    interval: float
    method: Union[str, Callable[..., Any]] = "timer"
    threaded: bool = True
    registered: bool = False
    _lock: threading.Lock = field(default_factory=threading.Lock, repr=False, compare=False)

    def register_once(self, schedule: Callable[["Timer"], Any]) -> bool:
        """
        首次调用时执行 schedule(self) 并置 registered=True，之后均为空操作。
        检查与设置在同一把锁内完成，重连并发触发 connect 时也只会调度一次。
        """
        with self._lock:
            if self.registered:
                return False
            schedule(self)
            self.registered = True
            return True


@dataclass
class Hook:
    type: str
    for_: tuple = HOOK_EVENTS
    method: str = "hook"


class PluginDescriptor:
    """单个插件类型的声明集合。"""

    def __init__(self, default_name: str):
        self._default_name = default_name
        self.matchers: list[Match] = []
        self.listeners: list[Listener] = []
        self.timers: list[Timer] = []
        self.ctcps: list[str] = []
        self.hooks: dict[str, list[Hook]] = {t: [] for t in HOOK_TYPES}

        self.help: Optional[str] = None
        self.prefix: Any = None
        self.suffix: Any = None
        self.react_on: str = "message"
        self.required_options: list = []
        self._plugin_name: Optional[str] = None

    @property
    def plugin_name(self) -> str:
        return self._plugin_name or self._default_name

    @plugin_name.setter
    def plugin_name(self, value: Optional[str]) -> None:
        self._plugin_name = value

    def set_option(self, key: str, value: Any) -> None:
        if key not in SETTABLE_OPTIONS:
            raise InvalidArgumentError(f"Unknown plugin option: {key!r}")
        if key == "required_options":
            value = self._option_names(value)
        setattr(self, key, value)

    @staticmethod
    def _option_names(value: Any) -> list:
        """单个选项名视为只含一项的列表。"""
        if value is None:
            return []
        if isinstance(value, (str, bytes)):
            return [value]
        if not isinstance(value, Iterable):
            raise InvalidArgumentError(f"required_options expects a name or a list of names, got {value!r}")
        return list(value)

    # ------------------------------------------------------------------
    # 规则追加
    # ------------------------------------------------------------------

    def add_match(self, rule: Match) -> Match:
        self.matchers.append(rule)
        return rule

    def add_listener(self, rule: Listener) -> Listener:
        self.listeners.append(rule)
        return rule

    def add_timer(self, rule: Timer) -> Timer:
        self.timers.append(rule)
        return rule

    def add_ctcp(self, command: Any) -> str:
        name = str(command).upper()
        self.ctcps.append(name)
        return name

    def add_hook(self, rule: Hook) -> Hook:
        if rule.type not in self.hooks:
            self.hooks[rule.type] = []
        self.hooks[rule.type].append(rule)
        return rule

    # ------------------------------------------------------------------
    # 钩子引擎
    # ------------------------------------------------------------------

    def hooks_for(self, type: Optional[str] = None, events: Any = None) -> Union[list, dict]:
        """
        type 为空时返回全部阶段；events 为空时不过滤。
        指定 events 时返回 for_ 与之有交集的钩子（按声明顺序，阶段按 pre、post 展开）。
        """
        if type is None:
            hooks: Union[list, dict] = self.hooks
        else:
            hooks = self.hooks.get(type, [])

        if events is None:
            return hooks

        if isinstance(events, (str, bytes)) or not isinstance(events, Iterable):
            wanted = {events}
        else:
            wanted = set(events)
        if isinstance(hooks, dict):
            hooks = [hook for phase in hooks.values() for hook in phase]
        return [hook for hook in hooks if wanted.intersection(hook.for_)]

    def call_hooks(self, type: str, event: str, instance: Any, args: Iterable = ()) -> None:
        """
        依次在实例上调用匹配的钩子方法。
        钩子属于插件作者声明的契约，方法缺失时抛出 MissingHandlerError，不吞掉。
        """
        args = list(args)
        for hook in self.hooks_for(type, event):
            method = getattr(instance, hook.method, None)
            if method is None:
                raise MissingHandlerError(self.plugin_name, hook.method)
            method(*args)

    def __repr__(self) -> str:
        return (
            f"<PluginDescriptor {self.plugin_name} matchers={len(self.matchers)} "
            f"listeners={len(self.listeners)} timers={len(self.timers)} ctcps={len(self.ctcps)}>"
        )
