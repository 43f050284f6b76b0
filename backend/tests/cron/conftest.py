import pytest

from catalog_admin.content.store import ContentStore
from catalog_admin.cron.manager import CronManager
from catalog_admin.cron.registry import CronRegistry, JobName
from catalog_admin.cron.types import ExecutionContext

from ..fixtures.catalog import FakeCatalogClient, make_media


@pytest.fixture
def fake_catalog():
    return FakeCatalogClient(
        anime=[make_media(1), make_media(2, romaji=None, english="Only English")],
        manga=[make_media(10, average_score=None, year=None)],
    )


@pytest.fixture
async def cron_manager(test_db, fake_catalog):
    """Manager wired to the real job catalog, a fake external catalog and the test DB."""
    manager = CronManager(catalog=fake_catalog, content=ContentStore())
    await manager.initialize(autostart=False)
    yield manager
    await manager.shutdown()


class RecordingJobs:
    """Job bodies for a test registry; ``refresh`` can be told to fail."""

    def __init__(self):
        self.calls: list[str] = []
        self.fail_with: Exception | None = None

    def build_registry(self) -> CronRegistry:
        registry = CronRegistry()

        @registry.register(JobName.REFRESH, description="Recording refresh")
        async def refresh(context: ExecutionContext):
            self.calls.append(context.job_name)
            context.log("refresh called")
            if self.fail_with is not None:
                raise self.fail_with

        @registry.register(JobName.TRENDING_ANIME, description="Recording anime")
        async def trending_anime(context: ExecutionContext):
            self.calls.append(context.job_name)

        return registry


@pytest.fixture
def recording_jobs():
    return RecordingJobs()


@pytest.fixture
async def recording_manager(test_db, fake_catalog, recording_jobs):
    """Manager whose registry holds only the recording jobs."""
    manager = CronManager(
        registry=recording_jobs.build_registry(),
        catalog=fake_catalog,
        content=ContentStore(),
    )
    await manager.initialize(autostart=False)
    yield manager
    await manager.shutdown()
