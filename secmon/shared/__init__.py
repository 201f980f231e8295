from secmon.shared.config import Settings, get_config, reload_config
from secmon.shared.console import ConsoleChannel

__all__ = [
    "get_config",
    "reload_config",
    "Settings",
    "ConsoleChannel",
]
