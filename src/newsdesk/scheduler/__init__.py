"""定时任务."""

from newsdesk.scheduler.tasks import create_scheduler, shutdown_scheduler, sweep_task

__all__ = [
    "create_scheduler",
    "shutdown_scheduler",
    "sweep_task",
]
