"""
Provider Registry for knativecatalog.

Provider classes register under the ``catalog.providers`` key they read,
so a host (or the CLI) can build every configured provider at once.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import TYPE_CHECKING, Any, Dict, List, Type

if TYPE_CHECKING:
    from .providers.provider import SyncProvider

logger = logging.getLogger(__name__)

# Registry storage
_providers: Dict[str, Type["SyncProvider"]] = {}


def register(config_key: str):
    """Decorator to register a provider class under its config key."""

    def decorator(cls):
        _providers[config_key] = cls
        logger.debug(f"Registered provider: {config_key} -> {cls.__name__}")
        return cls

    return decorator


def get_provider_class(config_key: str) -> Type["SyncProvider"]:
    """Get provider class by config key."""
    if config_key not in _providers:
        raise ValueError(f"Unknown provider: {config_key}. Available: {list(_providers.keys())}")
    return _providers[config_key]


def list_providers() -> List[str]:
    """List all registered provider config keys."""
    return list(_providers.keys())


def build_all_providers(config_root: Mapping[str, Any], **options: Any) -> List["SyncProvider"]:
    """Run ``from_config`` for every registered provider class.

    Options (``schedule``, ``scheduler``, ``fetcher``) are passed through.
    Sections absent from the configuration contribute no providers.
    """
    providers: List["SyncProvider"] = []
    for config_key, cls in _providers.items():
        built = cls.from_config(config_root, **options)
        if built:
            logger.info(f"Built {len(built)} provider(s) for {config_key}")
        providers.extend(built)
    return providers


# Import providers to trigger registration
# These imports are at the bottom to avoid circular imports
def _load_providers():
    from .providers import provider  # noqa: F401


_load_providers()
