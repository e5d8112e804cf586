"""
插件绑定：把插件类型的声明编译为宿主上的订阅

宿主需提供：
- on(category, pattern, handler, *bound_args)：handler(message, *bound_args, *captures)
- plugin_options(plugin_class) -> dict | None
- plugin_prefix / plugin_suffix：全局默认前后缀
- schedule_timer(interval, callback, threaded=True)（经由插件实例的 schedule_timer() 调用）

每个插件实例只绑定一次。选项缺失时整体放弃绑定；
监听器与匹配器缺少目标方法时仅记录警告，钩子与 CTCP 方法缺失则照常抛出。
"""

import inspect
from typing import Any, Callable, Optional

from logger_config import get_logger
from pattern import Pattern
from plugin_descriptor import Listener, Match, MissingHandlerError, PluginDescriptor, Timer

logger = get_logger("PluginBinder")

VARIADIC = -1


def missing_options(host: Any, plugin_class: type, descriptor: PluginDescriptor) -> list:
    """返回宿主选项中缺少的必需选项名（保持声明顺序）。"""
    options = host.plugin_options(plugin_class) or {}
    return [name for name in descriptor.required_options if name not in options]


def handler_arity(method: Callable, explicit: Optional[int] = None) -> int:
    """
    计算处理方法在 message 之外声明的参数个数。
    带 *args 或存在默认值的位置参数视为可变参数（-1）。
    """
    if explicit is not None:
        return explicit
    try:
        sig = inspect.signature(method)
    except (TypeError, ValueError):
        return VARIADIC

    count = 0
    for param in sig.parameters.values():
        if param.kind == param.VAR_POSITIONAL:
            return VARIADIC
        if param.kind in (param.POSITIONAL_ONLY, param.POSITIONAL_OR_KEYWORD):
            if param.default is not param.empty:
                return VARIADIC
            count += 1
    # 首个位置参数是 message
    return max(count - 1, 0)


def adapt_args(arity: int, args: tuple) -> tuple:
    if arity > 0:
        return tuple(args[:arity])
    if arity == 0:
        return ()
    return tuple(args)


def _warn_missing(descriptor: PluginDescriptor, method: str) -> None:
    logger.warning(
        "Warning: The plugin '%s' is missing the method '%s'",
        descriptor.plugin_name,
        method,
    )


def _effective_affixes(host: Any, descriptor: PluginDescriptor) -> tuple:
    prefix = descriptor.prefix if descriptor.prefix is not None else getattr(host, "plugin_prefix", None)
    suffix = descriptor.suffix if descriptor.suffix is not None else getattr(host, "plugin_suffix", None)
    return prefix, suffix


# ----------------------------------------------------------------------
# 各类闭包
# ----------------------------------------------------------------------

def _listener_handler(descriptor: PluginDescriptor, listener: Listener) -> Callable:
    def handle(message, plugin, *args):
        method = getattr(plugin, listener.method, None)
        if method is None:
            _warn_missing(descriptor, listener.method)
            return
        descriptor.call_hooks("pre", "listen_to", plugin, [message])
        method(message, *args)
        descriptor.call_hooks("post", "listen_to", plugin, [message])

    return handle


def _match_handler(descriptor: PluginDescriptor) -> Callable:
    def handle(message, plugin, rule: Match, *args):
        method = getattr(plugin, rule.method, None)
        if method is None:
            _warn_missing(descriptor, rule.method)
            return
        adapted = adapt_args(handler_arity(method, rule.arity), args)
        descriptor.call_hooks("pre", "match", plugin, [message])
        method(message, *adapted)
        descriptor.call_hooks("post", "match", plugin, [message])

    return handle


def _ctcp_handler(descriptor: PluginDescriptor) -> Callable:
    def handle(message, plugin, command: str, *args):
        descriptor.call_hooks("pre", "ctcp", plugin, [message])
        method_name = "ctcp_" + command.lower()
        method = getattr(plugin, method_name, None)
        if method is None:
            raise MissingHandlerError(descriptor.plugin_name, method_name)
        method(message, *args)
        descriptor.call_hooks("post", "ctcp", plugin, [message])

    return handle


def _timer_handler(instance: Any, timer: Timer) -> Callable:
    def schedule(rule: Timer):
        instance.schedule_timer(rule.interval, method=rule.method, threaded=rule.threaded)

    def handle(*_args):
        timer.register_once(schedule)

    return handle


def _help_handler(message, help_message: str, *_args):
    message.reply(help_message)


# ----------------------------------------------------------------------
# 绑定入口
# ----------------------------------------------------------------------

def register_with_host(host: Any, instance: Any) -> list:
    """
    将 instance 所属插件类型的全部声明注册到 host。
    返回缺失的必需选项列表；非空表示未注册任何内容。
    """
    plugin_class = type(instance)
    descriptor: PluginDescriptor = plugin_class.descriptor()
    name = descriptor.plugin_name

    missing = missing_options(host, plugin_class, descriptor)
    if missing:
        logger.warning(
            "[plugin] %s: Could not register plugin because the following options are not set: %s",
            name,
            ", ".join(str(m) for m in missing),
        )
        return missing

    for listener in descriptor.listeners:
        logger.debug("[plugin] %s: Registering listener for type `%s`", name, listener.event)
        host.on(listener.event, None, _listener_handler(descriptor, listener), instance)

    if not descriptor.matchers:
        descriptor.add_match(Match(name, True, True, "execute"))

    prefix, suffix = _effective_affixes(host, descriptor)
    react_on = descriptor.react_on or "message"
    match_handler = _match_handler(descriptor)

    for rule in descriptor.matchers:
        pattern = Pattern(
            prefix if rule.use_prefix else None,
            rule.pattern,
            suffix if rule.use_suffix else None,
        )
        logger.debug(
            "[plugin] %s: Registering executor with pattern `%r`, reacting on `%s`",
            name,
            pattern,
            react_on,
        )
        host.on(react_on, pattern, match_handler, instance, rule)

    ctcp_handler = _ctcp_handler(descriptor)
    for command in descriptor.ctcps:
        logger.debug("[plugin] %s: Registering CTCP `%s`", name, command)
        host.on("ctcp", command, ctcp_handler, instance, command)

    for timer in descriptor.timers:
        logger.debug(
            "[plugin] %s: Registering timer with interval `%s` for method `%s`",
            name,
            timer.interval,
            getattr(timer.method, "__name__", timer.method),
        )
        host.on("connect", None, _timer_handler(instance, timer), instance)

    if descriptor.help:
        logger.debug("[plugin] %s: Registering help message", name)
        help_pattern = Pattern(prefix, f"help {name}", suffix)
        host.on("message", help_pattern, _help_handler, descriptor.help)

    return []
