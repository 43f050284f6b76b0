from ..registry import JobName, cron_registry
from ..types import ExecutionContext


@cron_registry.register(
    JobName.REFRESH, description="Update content trend scores and rankings"
)
async def refresh_trend_scores(context: ExecutionContext):
    updated = await context.content.recompute_trend_scores()
    context.log(f"Recomputed trend scores for {updated} items")
