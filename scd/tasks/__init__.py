"""Background task supervision."""

from scd.tasks.parsers import OutputParser, derive_status
from scd.tasks.supervisor import TaskSupervisor

__all__ = ["OutputParser", "TaskSupervisor", "derive_status"]
