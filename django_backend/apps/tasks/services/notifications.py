import logging

from django.db import transaction

logger = logging.getLogger(__name__)

NOTIFIED_EVENTS = (
    "task_created",
    "task_completed",
    "level_up",
    "status_changed",
    "task_assigned",
    "task_deleted",
    "comment_added",
)


def notify(team_id, event_kind, payload):
    """Queue an outbound notification to run after the current transaction commits."""
    from apps.tasks.celery_tasks import send_task_notification

    if event_kind not in NOTIFIED_EVENTS:
        logger.debug(f"Skipping notification for unsupported event {event_kind}")
        return

    transaction.on_commit(
        lambda: send_task_notification.delay(team_id, event_kind, payload),
        robust=True,
    )
