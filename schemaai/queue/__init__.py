from schemaai.queue.models import FailedJobSummary, QueueStats, RunResult
from schemaai.queue.scheduler import LOCK_KEY, Scheduler, clamp_run_size

__all__ = ["FailedJobSummary", "QueueStats", "RunResult", "LOCK_KEY", "Scheduler", "clamp_run_size"]
