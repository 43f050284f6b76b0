"""
Job registry mapping job names to their job bodies.
"""

from enum import Enum
from typing import Dict

from .errors import UnknownJobError
from .types import AsyncJobFunction, JobRegistration


class JobName(str, Enum):
    """The closed set of jobs the scheduler knows how to run."""

    TRENDING_ANIME = "trendingAnime"
    TRENDING_MANGA = "trendingManga"
    REFRESH = "refresh"
    GENRES = "genres"


class CronRegistry:
    """
    Registry of job bodies keyed by ``JobName``.

    Lookups by plain string are accepted so that names coming from HTTP
    requests or the database can be resolved directly; anything outside
    ``JobName`` is rejected with ``UnknownJobError``.
    """

    def __init__(self):
        # job name -> JobRegistration
        self._jobs: Dict[JobName, JobRegistration] = {}

    def register(self, name: JobName, description: str = ""):
        """
        Decorator to register a job body.

        Example:
            ```python
            @cron_registry.register(JobName.REFRESH, "Recompute trend scores")
            async def refresh_trend_scores(context: ExecutionContext):
                updated = await context.content.recompute_trend_scores()
                context.log(f"Updated {updated} items")
            ```
        """

        def decorator(func: AsyncJobFunction) -> AsyncJobFunction:
            self._jobs[name] = JobRegistration(function=func, description=description)
            return func

        return decorator

    def resolve(self, job_name: str) -> JobName:
        """
        Raises:
            UnknownJobError: If ``job_name`` is not a registered job
        """
        try:
            name = JobName(job_name)
        except ValueError:
            raise UnknownJobError(job_name) from None
        if name not in self._jobs:
            raise UnknownJobError(job_name)
        return name

    def get_job(self, job_name: str) -> JobRegistration:
        """
        Raises:
            UnknownJobError: If ``job_name`` is not a registered job
        """
        return self._jobs[self.resolve(job_name)]

    def get_all_jobs(self) -> Dict[JobName, JobRegistration]:
        return self._jobs.copy()

    def is_registered(self, job_name: str) -> bool:
        try:
            self.resolve(job_name)
        except UnknownJobError:
            return False
        return True


# Global cron registry instance
cron_registry = CronRegistry()
