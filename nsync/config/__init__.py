from .loader import DEFAULT_CONFIG_TEMPLATE, find_config_file, load_config
from .models import (
    BuildConfig,
    CompressionConfig,
    NsyncConfig,
    TargetConfig,
    WorkdirConfig,
)

__all__ = [
    "BuildConfig",
    "CompressionConfig",
    "DEFAULT_CONFIG_TEMPLATE",
    "NsyncConfig",
    "TargetConfig",
    "WorkdirConfig",
    "find_config_file",
    "load_config",
]
