"""Settings access for Chronicle.

    from chronicle.config import get_settings

    batch = get_settings().audit.verify_batch_size
"""

from functools import lru_cache

from chronicle.config.loader import load_config
from chronicle.config.settings import Settings, set_toml_config


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Build the process-wide Settings once.

    TOML layers are read from disk and installed as the lowest-priority
    source; CHRONICLE_* environment variables override them. Use
    reload_settings() after editing config files.
    """
    set_toml_config(load_config())
    return Settings()


def reload_settings() -> Settings:
    get_settings.cache_clear()
    return get_settings()


__all__ = ["Settings", "get_settings", "reload_settings"]
