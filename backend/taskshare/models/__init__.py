"""Aggregate model imports for Alembic auto-detection."""

from taskshare.models.user import User  # noqa: F401
from taskshare.models.task_list import TaskList, ListShare  # noqa: F401
from taskshare.models.task import Task, TaskShare, TaskStatus, TaskPriority  # noqa: F401
from taskshare.models.notification import Notification, NotificationType  # noqa: F401
