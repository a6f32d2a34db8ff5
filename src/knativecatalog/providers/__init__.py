"""
Knative entity providers for the software catalog.

Components:
- config: provider and schedule configuration loading
- fetcher: HTTP fetch of event type listings
- mapper: event type -> API entity mapping
- scheduler: task runner interfaces and the APScheduler implementation
- tasks: failure-isolated sync cycle
- provider: the providers themselves
"""

from .config import ProviderConfig, ScheduleDefinition, read_provider_configs
from .entities import DeferredEntity, Entity, EntityMutation, EntityProviderConnection
from .fetcher import RemoteFetcher
from .mapper import EntityMapper, EventTypeRecord
from .provider import KnativeEventMeshProvider, KnativeEventTypeProvider, SyncProvider
from .scheduler import ApschedulerTaskScheduler, TaskRunner, TaskScheduler
from .tasks import ScheduledSyncTask

__all__ = [
    "ProviderConfig",
    "ScheduleDefinition",
    "read_provider_configs",
    "DeferredEntity",
    "Entity",
    "EntityMutation",
    "EntityProviderConnection",
    "RemoteFetcher",
    "EntityMapper",
    "EventTypeRecord",
    "SyncProvider",
    "KnativeEventTypeProvider",
    "KnativeEventMeshProvider",
    "ApschedulerTaskScheduler",
    "TaskRunner",
    "TaskScheduler",
    "ScheduledSyncTask",
]
