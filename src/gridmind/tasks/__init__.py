"""Task subsystem — persisted units of dispatch work."""

from gridmind.tasks.models import Task, TaskCreate, TaskPriority, TaskStatus, TaskUpdate
from gridmind.tasks.store import TaskRepository, TaskStore

__all__ = [
    "Task",
    "TaskCreate",
    "TaskPriority",
    "TaskRepository",
    "TaskStatus",
    "TaskStore",
    "TaskUpdate",
]
