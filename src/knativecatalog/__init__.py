"""
knativecatalog - Knative entity providers for the software catalog.

Polls Knative event type backends on a schedule, maps event types to API
entities and submits full snapshots to the catalog:

    from knativecatalog import KnativeEventTypeProvider, ApschedulerTaskScheduler

    scheduler = ApschedulerTaskScheduler()
    providers = KnativeEventTypeProvider.from_config(config_root, scheduler=scheduler)
    for provider in providers:
        await provider.connect(connection)
    scheduler.start()
"""

__version__ = "0.1.0"

from .config import ServiceSettings, get_config
from .errors import (
    ConfigurationError,
    MappingError,
    NotInitializedError,
    ProviderError,
    RemoteFetchError,
    SubmissionError,
)
from .providers import (
    ApschedulerTaskScheduler,
    EntityMutation,
    KnativeEventMeshProvider,
    KnativeEventTypeProvider,
    ProviderConfig,
    ScheduleDefinition,
    SyncProvider,
)
from .registry import build_all_providers, get_provider_class, list_providers

__all__ = [
    "__version__",
    # Config
    "ServiceSettings",
    "get_config",
    # Errors
    "ProviderError",
    "ConfigurationError",
    "NotInitializedError",
    "RemoteFetchError",
    "MappingError",
    "SubmissionError",
    # Providers
    "SyncProvider",
    "KnativeEventTypeProvider",
    "KnativeEventMeshProvider",
    "ProviderConfig",
    "ScheduleDefinition",
    "EntityMutation",
    "ApschedulerTaskScheduler",
    # Registry
    "build_all_providers",
    "get_provider_class",
    "list_providers",
]
