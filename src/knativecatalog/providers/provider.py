"""
Knative entity providers.

A provider polls one configured base URL, maps the event types it serves to
API entities and submits them as a full mutation under its own location key:

    connect(connection) -> task registered -> each tick:
        fetch(base_url) -> map(records) -> connection.apply_mutation(full)

Providers start Disconnected; ``connect()`` moves them to Connected for the
rest of the process lifetime.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any, ClassVar, List, Optional, Union

from ..errors import ConfigurationError, NotInitializedError, SubmissionError
from ..registry import register
from .config import ProviderConfig, ScheduleDefinition, read_provider_configs
from .entities import DeferredEntity, EntityMutation, EntityProviderConnection
from .fetcher import RemoteFetcher
from .mapper import EntityMapper
from .scheduler import TaskRunner, TaskScheduler
from .tasks import ScheduledSyncTask

logger = logging.getLogger(__name__)


class SyncProvider:
    """Scheduled poll-transform-reconcile cycle for one polling target.

    Subclasses set ``config_key`` (the ``catalog.providers`` section they
    read) and ``name_prefix`` (used for the provider name, task id and
    location key).
    """

    config_key: ClassVar[str] = ""
    name_prefix: ClassVar[str] = ""

    def __init__(
        self,
        config: ProviderConfig,
        task_runner: TaskRunner,
        *,
        fetcher: Optional[RemoteFetcher] = None,
        mapper: Optional[EntityMapper] = None,
    ):
        self.config = config
        self.task_runner = task_runner
        self.fetcher = fetcher or RemoteFetcher()
        self.mapper = mapper or EntityMapper(config.id, config.base_url)
        self.logger = logger.getChild(self.get_provider_name())
        self._connection: Optional[EntityProviderConnection] = None
        self._task = ScheduledSyncTask(
            task_id=f"{self.get_provider_name()}:run",
            run=self.run,
            target=config.base_url,
            task_logger=self.logger,
        )

    @classmethod
    def from_config(
        cls,
        config_root: Mapping[str, Any],
        *,
        schedule: Union[TaskRunner, ScheduleDefinition, None] = None,
        scheduler: Optional[TaskScheduler] = None,
        fetcher: Optional[RemoteFetcher] = None,
    ) -> List["SyncProvider"]:
        """Build one provider per configured target.

        Each provider runs on its own configured schedule when a scheduler is
        given, otherwise on the ``schedule`` default.
        """
        provider_configs = read_provider_configs(config_root, cls.config_key)

        if schedule is None and scheduler is None:
            raise ConfigurationError("Either schedule or scheduler must be provided.")

        default_runner: Optional[TaskRunner]
        if isinstance(schedule, ScheduleDefinition):
            if scheduler is None:
                raise ConfigurationError("A default schedule definition requires a scheduler.")
            default_runner = scheduler.create_scheduled_task_runner(schedule)
        else:
            default_runner = schedule

        logger.info(
            f"Found {len(provider_configs)} {cls.config_key} provider configs with ids: "
            f"{', '.join(pc.id for pc in provider_configs)}"
        )

        providers = []
        for provider_config in provider_configs:
            if scheduler is not None and provider_config.schedule is not None:
                task_runner = scheduler.create_scheduled_task_runner(provider_config.schedule)
            elif default_runner is not None:
                task_runner = default_runner
            else:
                raise ConfigurationError(
                    f"No schedule provided neither via code nor config for "
                    f"{cls.__name__} entity provider: {provider_config.id}."
                )
            providers.append(cls(provider_config, task_runner, fetcher=fetcher))
        return providers

    @property
    def id(self) -> str:
        return self.config.id

    @property
    def base_url(self) -> str:
        return self.config.base_url

    @property
    def connected(self) -> bool:
        return self._connection is not None

    @property
    def task(self) -> ScheduledSyncTask:
        return self._task

    def get_provider_name(self) -> str:
        return f"{self.name_prefix}-{self.config.id}"

    async def connect(self, connection: EntityProviderConnection) -> None:
        """Bind the catalog connection and register the recurring task."""
        self.attach(connection)
        try:
            await self.task_runner.run(self._task.task_id, self._task.execute)
        except BaseException:
            self._connection = None
            raise

    def attach(self, connection: EntityProviderConnection) -> None:
        """Bind the catalog connection without scheduling (one-off runs)."""
        if self._connection is not None:
            raise RuntimeError(f"Provider {self.get_provider_name()} is already connected")
        self._connection = connection

    async def run(self) -> None:
        """Run one cycle: fetch, map and submit a full mutation."""
        if self._connection is None:
            raise NotInitializedError(self.get_provider_name())

        records = await self.fetcher.fetch(self.config.base_url)
        entities = self.mapper.map(records)

        location_key = self.get_provider_name()
        mutation = EntityMutation(
            type="full",
            entities=[DeferredEntity(entity=entity, location_key=location_key) for entity in entities],
        )
        try:
            await self._connection.apply_mutation(mutation)
        except Exception as e:
            raise SubmissionError(f"Failed to apply mutation for {location_key}: {type(e).__name__}") from e

        self.logger.info(f"Submitted {len(entities)} entities from {self.config.base_url}")

    def __repr__(self) -> str:
        state = "connected" if self.connected else "disconnected"
        return f"<{type(self).__name__} {self.get_provider_name()} {state}>"


@register("knativeEventType")
class KnativeEventTypeProvider(SyncProvider):
    """Event types served by a Knative event type backend."""

    config_key = "knativeEventType"
    name_prefix = "knative-event-type"


@register("knativeEventMesh")
class KnativeEventMeshProvider(SyncProvider):
    """Event types served by a Knative event mesh backend."""

    config_key = "knativeEventMesh"
    name_prefix = "knative-event-mesh"


__all__ = ["SyncProvider", "KnativeEventTypeProvider", "KnativeEventMeshProvider"]
