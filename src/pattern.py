"""
组合匹配模式：前缀 + 主模式 + 后缀

每个组成部分可以是字符串、已编译正则或可调用对象（以消息为参数，返回前两者之一）。
字符串会被转义；字符串前缀锚定行首，字符串后缀锚定行尾。
None 或空字符串视为不存在。
"""

import re
from typing import Any, Optional


def _resolve(obj: Any, message: Any) -> Any:
    if callable(obj) and not isinstance(obj, re.Pattern):
        return obj(message)
    return obj


def _to_regex_source(obj: Any, anchor: Optional[str] = None) -> str:
    if obj is None or obj == "":
        return ""
    if isinstance(obj, re.Pattern):
        return obj.pattern
    escaped = re.escape(str(obj))
    if anchor == "start":
        return "^" + escaped
    if anchor == "end":
        return escaped + "$"
    return escaped


class Pattern:
    """由 (prefix, pattern, suffix) 构成的复合模式。"""

    def __init__(self, prefix: Any, pattern: Any, suffix: Any):
        self.prefix = prefix
        self.pattern = pattern
        self.suffix = suffix

    def to_regex(self, message: Any = None) -> re.Pattern:
        """按消息解析可调用部分后生成正则。"""
        pattern = _resolve(self.pattern, message)
        prefix = _to_regex_source(_resolve(self.prefix, message), "start")
        suffix = _to_regex_source(_resolve(self.suffix, message), "end")

        if pattern is None or isinstance(pattern, re.Pattern):
            core = pattern.pattern if pattern is not None else ""
            return re.compile(prefix + core + suffix)

        # 纯字符串模式整体锚定，"!help weather" 只匹配整行
        core = re.escape(str(pattern))
        if not prefix:
            core = "^" + core
        if not suffix:
            core = core + "$"
        return re.compile(prefix + core + suffix)

    def match(self, text: str, message: Any = None) -> Optional[re.Match]:
        return self.to_regex(message).search(text or "")

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Pattern):
            return NotImplemented
        return (self.prefix, self.pattern, self.suffix) == (other.prefix, other.pattern, other.suffix)

    def __hash__(self) -> int:
        return hash((self.prefix, self.pattern, self.suffix))

    def __repr__(self) -> str:
        return f"Pattern(prefix={self.prefix!r}, pattern={self.pattern!r}, suffix={self.suffix!r})"
