from .events import TaskEventType, publish_task_event

__all__ = [
    "TaskEventType",
    "publish_task_event",
]
