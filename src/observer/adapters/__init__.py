"""
Stats report adapters, one per browser dialect.

The dialect is chosen once, from the detected browser, when the collector
is built.
"""

import logging
from typing import Optional

from ..sdk.config_manager import AdapterConfig
from .base import BaseAdapter
from .chrome import Chrome86Adapter, Chrome86To96Adapter
from .firefox import Firefox94Adapter

CHROMIUM_BROWSERS = ("chrome", "chromium", "edge", "opera", "brave")
TRACKLESS_BROWSERS = ("firefox", "safari")


def _major_version(version: Optional[str]) -> Optional[int]:
    if not version:
        return None
    head = str(version).split(".", 1)[0].strip()
    try:
        return int(head)
    except ValueError:
        return None


def create_adapter(config: Optional[AdapterConfig] = None,
                   logger: Optional[logging.Logger] = None) -> BaseAdapter:
    """Select the adapter matching the configured browser type and version."""
    config = config or AdapterConfig()
    browser = (config.browser_type or "").lower()
    major = _major_version(config.browser_version)

    if browser in CHROMIUM_BROWSERS and major is not None and 86 <= major <= 96:
        adapter: BaseAdapter = Chrome86To96Adapter(logger)
    elif browser in TRACKLESS_BROWSERS:
        adapter = Firefox94Adapter(logger)
    else:
        adapter = Chrome86Adapter(logger)

    (logger or logging.getLogger(__name__)).debug(
        f"Selected {adapter.name} adapter for browser={browser or 'unknown'} version={config.browser_version}"
    )
    return adapter


__all__ = [
    "BaseAdapter",
    "Chrome86Adapter",
    "Chrome86To96Adapter",
    "Firefox94Adapter",
    "create_adapter",
]
