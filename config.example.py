"""
Bot 插件核心配置文件示例
复制此文件为 config.py 并按需修改
"""

# 插件配置
PLUGIN_CONFIG = {
    "prefix": "!",               # 全局插件前缀（插件未设置 prefix 时使用），可为字符串或正则
    "suffix": None,              # 全局插件后缀，None 表示不使用
    "plugins_dir": "plugins",    # 插件目录（相对于项目根目录），_ 开头的文件不会被加载
    "options_dir": "config/plugins",  # 插件专属选项目录，文件名为 <插件名>.json
}

# 日志配置
LOG_CONFIG = {
    "level": "INFO",             # DEBUG 可看到每条订阅的注册信息
    "dir": "logs",               # 相对于项目根目录
    "file_enabled": True,        # False = 只输出到控制台
    "max_bytes": 5 * 1024 * 1024,  # 单个日志文件大小上限
    "backup_count": 3,           # 轮转保留份数
}
