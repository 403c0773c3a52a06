import logging

from django.conf import settings
from django.db import DatabaseError, transaction

from apps.tasks.models import ActivityEntry

logger = logging.getLogger(__name__)


def record(team, user, action, task=None, task_title=None, xp_earned=None, details=None):
    """
    Append one journal entry for ``team``.

    The write runs in its own savepoint. If it fails the error is logged and
    None is returned; the surrounding transition still commits. Successful
    entries are broadcast to the team's activity group once the outer
    transaction commits.
    """
    from apps.tasks.celery_tasks import broadcast_activity

    try:
        with transaction.atomic():
            entry = ActivityEntry.objects.create(
                team=team,
                user=user,
                action=action,
                task=task,
                task_title=task_title if task_title is not None else getattr(task, "title", ""),
                xp_earned=xp_earned,
                details=details or {},
            )
    except DatabaseError:
        logger.exception(f"Failed to record {action} activity for team {team.pk}")
        return None

    transaction.on_commit(lambda: broadcast_activity.delay(entry.pk), robust=True)
    return entry


def list_activity(team, limit=None):
    """Newest entries first, at most ``ACTIVITY_MAX_PAGE_SIZE`` of them."""
    if limit is None:
        limit = settings.ACTIVITY_PAGE_SIZE
    limit = max(1, min(int(limit), settings.ACTIVITY_MAX_PAGE_SIZE))
    return list(
        ActivityEntry.objects.filter(team=team)
        .select_related("user")
        .order_by("-created_at", "-id")[:limit]
    )
