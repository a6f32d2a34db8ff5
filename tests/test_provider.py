"""
Tests for SyncProvider construction, state machine and run cycle.
"""

import logging
from unittest.mock import AsyncMock

import httpx
import pytest

from knativecatalog.errors import (
    ConfigurationError,
    NotInitializedError,
    RemoteFetchError,
    SubmissionError,
)
from knativecatalog.providers.config import ProviderConfig
from knativecatalog.providers.entities import EntityMutation
from knativecatalog.providers.fetcher import RemoteFetcher
from knativecatalog.providers.provider import KnativeEventMeshProvider, KnativeEventTypeProvider


def make_provider(task_runner, records=None, **kwargs):
    fetcher = AsyncMock(spec=RemoteFetcher)
    fetcher.fetch.return_value = records if records is not None else [{"type": "a.b.c"}]
    config = ProviderConfig(id=kwargs.pop("provider_id", "p1"), baseUrl="http://x/eventtypes")
    return KnativeEventTypeProvider(config, task_runner, fetcher=fetcher, **kwargs), fetcher


class TestFromConfig:
    """Test SyncProvider.from_config()."""

    def test_one_provider_per_id_in_order(self, config_root, task_runner):
        providers = KnativeEventTypeProvider.from_config(config_root, schedule=task_runner)

        assert len(providers) == 2
        assert [p.id for p in providers] == ["a", "b"]
        assert all(isinstance(p, KnativeEventTypeProvider) for p in providers)

    def test_requires_schedule_or_scheduler(self, config_root):
        with pytest.raises(ConfigurationError, match="Either schedule or scheduler"):
            KnativeEventTypeProvider.from_config(config_root)

    def test_config_schedule_preferred_with_scheduler(self, config_root, scheduler, task_runner):
        providers = KnativeEventTypeProvider.from_config(
            config_root, schedule=task_runner, scheduler=scheduler
        )

        assert providers[0].task_runner is task_runner
        assert len(scheduler.runners) == 1
        assert providers[1].task_runner is scheduler.runners[0]
        assert scheduler.runners[0].schedule.frequency.total_seconds() == 600

    def test_config_schedule_without_scheduler_uses_default(self, config_root, task_runner):
        providers = KnativeEventTypeProvider.from_config(config_root, schedule=task_runner)
        assert all(p.task_runner is task_runner for p in providers)

    def test_missing_schedule_without_default_fails(self, config_root, scheduler):
        with pytest.raises(ConfigurationError, match="No schedule provided.*: a"):
            KnativeEventTypeProvider.from_config(config_root, scheduler=scheduler)

    def test_default_schedule_definition(self, config_root, scheduler, schedule):
        providers = KnativeEventTypeProvider.from_config(
            config_root, schedule=schedule, scheduler=scheduler
        )

        default_runner = scheduler.runners[0]
        assert default_runner.schedule is schedule
        assert providers[0].task_runner is default_runner
        assert providers[1].task_runner is scheduler.runners[1]

    def test_schedule_definition_requires_scheduler(self, config_root, schedule):
        with pytest.raises(ConfigurationError, match="requires a scheduler"):
            KnativeEventTypeProvider.from_config(config_root, schedule=schedule)

    def test_missing_base_url_fails_before_registration(self, scheduler, schedule):
        root = {"catalog": {"providers": {"knativeEventType": {"p1": {}}}}}

        with pytest.raises(ConfigurationError, match="baseUrl"):
            KnativeEventTypeProvider.from_config(root, schedule=schedule, scheduler=scheduler)

        assert scheduler.runners == []

    def test_no_providers_configured(self, task_runner):
        assert KnativeEventTypeProvider.from_config({}, schedule=task_runner) == []

    def test_logs_provider_count(self, config_root, task_runner, caplog):
        caplog.set_level(logging.INFO)
        KnativeEventTypeProvider.from_config(config_root, schedule=task_runner)

        assert any("Found 2 knativeEventType provider configs with ids: a, b" in r.getMessage() for r in caplog.records)

    def test_event_mesh_reads_its_own_section(self, task_runner):
        root = {"catalog": {"providers": {"knativeEventMesh": {"prod": {"baseUrl": "http://mesh"}}}}}

        providers = KnativeEventMeshProvider.from_config(root, schedule=task_runner)

        assert len(providers) == 1
        assert providers[0].get_provider_name() == "knative-event-mesh-prod"


class TestConnect:
    """Test the Disconnected -> Connected transition."""

    @pytest.mark.asyncio
    async def test_run_while_disconnected(self, task_runner):
        provider, fetcher = make_provider(task_runner)

        with pytest.raises(NotInitializedError):
            await provider.run()

        assert fetcher.fetch.await_count == 0
        assert provider.connected is False

    @pytest.mark.asyncio
    async def test_connect_registers_named_task(self, task_runner, connection):
        provider, _ = make_provider(task_runner)

        await provider.connect(connection)

        assert provider.connected is True
        assert list(task_runner.tasks) == ["knative-event-type-p1:run"]

    @pytest.mark.asyncio
    async def test_connect_twice_fails(self, task_runner, connection):
        provider, _ = make_provider(task_runner)
        await provider.connect(connection)

        with pytest.raises(RuntimeError):
            await provider.connect(connection)

    @pytest.mark.asyncio
    async def test_failed_registration_leaves_provider_disconnected(self, task_runner, connection):
        provider, _ = make_provider(task_runner)
        task_runner.run = AsyncMock(side_effect=ValueError("bad trigger"))

        with pytest.raises(ValueError):
            await provider.connect(connection)

        assert provider.connected is False
        with pytest.raises(ValueError):
            await provider.connect(connection)
        assert task_runner.run.await_count == 2

    @pytest.mark.asyncio
    async def test_shared_runner_keeps_tasks_apart(self, task_runner, connection):
        first, _ = make_provider(task_runner, provider_id="a")
        second, _ = make_provider(task_runner, provider_id="b")

        await first.connect(connection)
        await second.connect(connection)

        assert set(task_runner.tasks) == {"knative-event-type-a:run", "knative-event-type-b:run"}


class TestRunCycle:
    """Test fetch -> map -> full mutation."""

    @pytest.mark.asyncio
    async def test_tick_applies_full_mutation(self, task_runner, connection):
        provider, fetcher = make_provider(task_runner, records=[{"type": "a.b.c"}, {"type": "d.e"}])
        await provider.connect(connection)

        await task_runner.tick()

        fetcher.fetch.assert_awaited_once_with("http://x/eventtypes")
        connection.apply_mutation.assert_awaited_once()
        mutation = connection.apply_mutation.await_args.args[0]
        assert isinstance(mutation, EntityMutation)
        assert mutation.type == "full"
        assert [d.entity.metadata.name for d in mutation.entities] == ["a.b.c", "d.e"]
        assert {d.location_key for d in mutation.entities} == {"knative-event-type-p1"}

    @pytest.mark.asyncio
    async def test_empty_listing_still_submits(self, task_runner, connection):
        provider, _ = make_provider(task_runner, records=[])
        await provider.connect(connection)

        await provider.run()

        mutation = connection.apply_mutation.await_args.args[0]
        assert mutation.type == "full"
        assert mutation.entities == []

    @pytest.mark.asyncio
    async def test_fetch_error_skips_mutation_and_recovers(self, task_runner, connection, caplog):
        provider, fetcher = make_provider(task_runner)
        fetcher.fetch.side_effect = [
            RemoteFetchError("GET http://x/eventtypes failed: 503 Service Unavailable", status_code=503),
            [{"type": "a.b.c"}],
        ]
        await provider.connect(connection)

        await task_runner.tick()

        assert connection.apply_mutation.await_count == 0
        errors = [r for r in caplog.records if r.levelno == logging.ERROR]
        assert len(errors) == 1
        assert errors[0].error["status"] == 503
        assert provider.connected is True

        await task_runner.tick()

        connection.apply_mutation.assert_awaited_once()
        assert connection.apply_mutation.await_args.args[0].type == "full"

    @pytest.mark.asyncio
    async def test_mapping_error_skips_mutation(self, task_runner, connection, caplog):
        provider, _ = make_provider(task_runner, records=[{"type": "ok"}, {"description": "no type"}])
        await provider.connect(connection)

        await task_runner.tick()

        assert connection.apply_mutation.await_count == 0
        errors = [r for r in caplog.records if r.levelno == logging.ERROR]
        assert errors[0].error["name"] == "MappingError"

    @pytest.mark.asyncio
    async def test_submission_error_wrapped(self, task_runner, connection):
        provider, _ = make_provider(task_runner)
        connection.apply_mutation.side_effect = ConnectionError("catalog unavailable")
        await provider.connect(connection)

        with pytest.raises(SubmissionError, match="ConnectionError") as exc_info:
            await provider.run()

        assert "catalog unavailable" not in str(exc_info.value)

    @pytest.mark.asyncio
    async def test_submission_error_contained_in_tick(self, task_runner, connection, caplog):
        provider, _ = make_provider(task_runner)
        connection.apply_mutation.side_effect = ConnectionError("catalog unavailable")
        await provider.connect(connection)

        await task_runner.tick()

        errors = [r for r in caplog.records if r.levelno == logging.ERROR]
        assert errors[0].error["name"] == "SubmissionError"


class TestEndToEnd:
    """Full cycle against a mocked HTTP backend."""

    @pytest.mark.asyncio
    async def test_last_write_wins_over_http(self, task_runner, connection):
        def handler(request):
            assert str(request.url) == "http://x/eventtypes"
            return httpx.Response(
                200,
                json=[
                    {"type": "a.b.c", "namespace": "ns1"},
                    {"type": "a.b.c", "namespace": "ns2"},
                ],
            )

        fetcher = RemoteFetcher(client=httpx.AsyncClient(transport=httpx.MockTransport(handler)))
        root = {"catalog": {"providers": {"knativeEventType": {"p1": {"baseUrl": "http://x/eventtypes"}}}}}
        [provider] = KnativeEventTypeProvider.from_config(root, schedule=task_runner, fetcher=fetcher)

        await provider.connect(connection)
        await task_runner.tick()

        mutation = connection.apply_mutation.await_args.args[0]
        assert mutation.type == "full"
        assert len(mutation.entities) == 1
        deferred = mutation.entities[0]
        assert deferred.entity.metadata.name == "a.b.c"
        assert deferred.entity.metadata.namespace == "ns2"
        assert deferred.location_key == provider.get_provider_name()
        assert mutation.to_dict()["entities"][0]["locationKey"] == "knative-event-type-p1"
