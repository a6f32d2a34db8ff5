"""
Shared fixtures: an in-process scheduler that fires ticks on demand and a
recording catalog connection.
"""

from typing import Awaitable, Callable, Dict, List, Optional
from unittest.mock import AsyncMock, MagicMock

import pytest

from knativecatalog.providers.config import ScheduleDefinition


class FakeTaskRunner:
    """TaskRunner that records registrations; ticks fire via tick()."""

    def __init__(self, schedule: Optional[ScheduleDefinition] = None):
        self.schedule = schedule
        self.tasks: Dict[str, Callable[[], Awaitable[None]]] = {}

    async def run(self, task_id: str, fn: Callable[[], Awaitable[None]]) -> None:
        self.tasks[task_id] = fn

    async def tick(self, task_id: Optional[str] = None) -> None:
        for tid in [task_id] if task_id else list(self.tasks):
            await self.tasks[tid]()


class FakeScheduler:
    """TaskScheduler handing out FakeTaskRunners."""

    def __init__(self):
        self.runners: List[FakeTaskRunner] = []

    def create_scheduled_task_runner(self, schedule: ScheduleDefinition) -> FakeTaskRunner:
        runner = FakeTaskRunner(schedule)
        self.runners.append(runner)
        return runner


@pytest.fixture
def task_runner():
    return FakeTaskRunner()


@pytest.fixture
def scheduler():
    return FakeScheduler()


@pytest.fixture
def connection():
    conn = MagicMock()
    conn.apply_mutation = AsyncMock(return_value=None)
    return conn


@pytest.fixture
def schedule():
    return ScheduleDefinition(frequency={"minutes": 5}, timeout={"minutes": 1})


@pytest.fixture
def config_root():
    return {
        "catalog": {
            "providers": {
                "knativeEventType": {
                    "a": {"baseUrl": "http://a.example/eventtypes"},
                    "b": {
                        "baseUrl": "http://b.example/eventtypes",
                        "schedule": {
                            "frequency": {"minutes": 10},
                            "timeout": {"minutes": 2},
                        },
                    },
                }
            }
        }
    }
