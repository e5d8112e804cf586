"""
插件加载器：从 plugins 目录发现、加载、卸载插件

- 发现：扫描目录下 .py，排除 _ 开头
- 加载：import 模块，查找其中定义的 BotPlugin 子类，读取 config/plugins/<name>.json
  写入宿主的插件选项后以宿主实例化（实例化即完成绑定）
- 卸载：从宿主移除插件及其订阅
"""

import importlib.util
import json
import os
import sys
from typing import Optional

from logger_config import get_logger
from plugin_base import BotPlugin
from plugin_registry import PluginRegistry

logger = get_logger("PluginLoader")

try:
    from config import PLUGIN_CONFIG
except ImportError:
    PLUGIN_CONFIG = {}

# 插件配置目录（项目根下）
DEFAULT_PLUGIN_CONFIG_DIR = PLUGIN_CONFIG.get("options_dir", "config/plugins")
DEFAULT_PLUGINS_DIR = PLUGIN_CONFIG.get("plugins_dir", "plugins")

# 项目根目录（src 的上一级）
_PROJECT_ROOT = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
_SRC_DIR = os.path.join(_PROJECT_ROOT, "src")


def _ensure_src_on_path() -> None:
    if _SRC_DIR not in sys.path:
        sys.path.insert(0, _SRC_DIR)


def load_plugin_config(
    plugin_name: str,
    config_dir: str = DEFAULT_PLUGIN_CONFIG_DIR,
) -> dict:
    """
    读取插件配置文件。路径: <项目根>/<config_dir>/<plugin_name>.json
    文件不存在或非合法 JSON 时返回 {}，不抛异常。
    """
    path = os.path.join(_PROJECT_ROOT, config_dir, f"{plugin_name}.json")
    if not os.path.isfile(path):
        return {}
    try:
        with open(path, "r", encoding="utf-8") as f:
            out = json.load(f)
            return out if isinstance(out, dict) else {}
    except (OSError, ValueError) as e:
        logger.warning("PluginLoader: 读取配置 %s 失败: %s", path, e)
        return {}


def _find_plugin_class(module) -> Optional[type]:
    """在模块中查找本模块定义的 BotPlugin 子类（排除 BotPlugin 自身与导入的类）。"""
    for attr_name in dir(module):
        obj = getattr(module, attr_name, None)
        if (
            isinstance(obj, type)
            and issubclass(obj, BotPlugin)
            and obj is not BotPlugin
            and obj.__module__ == module.__name__
        ):
            return obj
    return None


def discover_plugins(plugins_dir: str = DEFAULT_PLUGINS_DIR) -> list[str]:
    """发现目录下可加载的插件名（.py 文件名去掉后缀，排除 _ 开头）。"""
    path = os.path.join(_PROJECT_ROOT, plugins_dir)
    if not os.path.isdir(path):
        return []
    names = []
    for name in sorted(os.listdir(path)):
        if name.startswith("_") or not name.endswith(".py"):
            continue
        if os.path.isfile(os.path.join(path, name)):
            names.append(name[:-3])
    return names


def load_plugin(
    registry: PluginRegistry,
    plugin_name: str,
    plugins_dir: str = DEFAULT_PLUGINS_DIR,
    config_dir: str = DEFAULT_PLUGIN_CONFIG_DIR,
) -> tuple[bool, str]:
    """
    加载单个插件并绑定到宿主。
    返回 (成功, 消息)。必需选项缺失时插件不会留在宿主中。
    """
    _ensure_src_on_path()
    path = os.path.join(_PROJECT_ROOT, plugins_dir)
    filepath = os.path.join(path, f"{plugin_name}.py")
    if not os.path.isfile(filepath):
        return False, f"插件不存在: {plugin_name}"

    if registry.get(plugin_name):
        return False, f"插件已加载: {plugin_name}"

    try:
        spec = importlib.util.spec_from_file_location(
            f"plugins.{plugin_name}",
            filepath,
        )
        if not spec or not spec.loader:
            return False, f"无法创建模块 spec: {plugin_name}"
        mod = importlib.util.module_from_spec(spec)
        sys.modules[spec.name] = mod
        spec.loader.exec_module(mod)
    except Exception as e:
        logger.exception("PluginLoader: 加载 %s 失败", plugin_name)
        sys.modules.pop(f"plugins.{plugin_name}", None)
        return False, f"加载失败: {e!s}"

    cls = _find_plugin_class(mod)
    if not cls:
        # 若未找到 BotPlugin 子类，移除已注入的模块，避免残留
        sys.modules.pop(spec.name, None)
        return False, f"插件未定义 BotPlugin 子类: {plugin_name}"

    registry.set_plugin_options(cls, load_plugin_config(plugin_name, config_dir))
    try:
        with registry.binding(plugin_name):
            instance = cls(registry)
    except Exception as e:
        logger.exception("PluginLoader: 实例化 %s 失败", plugin_name)
        registry.remove_subscriptions(plugin_name)
        sys.modules.pop(spec.name, None)
        return False, f"实例化失败: {e!s}"

    if not instance.registered:
        sys.modules.pop(spec.name, None)
        return False, f"缺少必需选项: {', '.join(str(o) for o in instance.missing_options)}"

    if not registry.register(plugin_name, instance):
        registry.remove_subscriptions(plugin_name, instance)
        sys.modules.pop(spec.name, None)
        return False, f"登记失败: {plugin_name}"
    return True, f"已加载: {plugin_name}"


def unload_plugin(registry: PluginRegistry, plugin_name: str) -> tuple[bool, str]:
    """
    卸载插件并移除其订阅。
    返回 (成功, 消息)。
    """
    if not registry.unregister(plugin_name):
        return False, f"插件未加载: {plugin_name}"
    # 从 sys.modules 移除，便于下次加载时重新 import
    sys.modules.pop(f"plugins.{plugin_name}", None)
    return True, f"已卸载: {plugin_name}"


def load_plugins_dir(
    registry: PluginRegistry,
    plugins_dir: str = DEFAULT_PLUGINS_DIR,
    config_dir: str = DEFAULT_PLUGIN_CONFIG_DIR,
) -> list[str]:
    """
    扫描目录并加载所有可加载插件。
    返回成功加载的插件名列表。
    """
    loaded = []
    for name in discover_plugins(plugins_dir):
        ok, msg = load_plugin(registry, name, plugins_dir, config_dir)
        if ok:
            loaded.append(name)
        else:
            logger.warning("PluginLoader: 跳过 %s: %s", name, msg)
    return loaded
