import logging

from django.db import transaction

from apps.common.exceptions import ValidationFailed
from apps.tasks.models import ActivityAction, Comment, Task, TaskPriority, TaskStatus
from apps.tasks.services import activity
from apps.tasks.services.access import (
    parse_priority,
    require_assignee,
    require_creator_or_admin,
    require_membership,
    require_task,
)
from apps.tasks.services.notifications import notify

logger = logging.getLogger(__name__)

EDITABLE_FIELDS = ("title", "priority", "category", "due_date", "notes")


def _clean_title(title):
    title = (title or "").strip()
    if not title:
        raise ValidationFailed("Title required")
    return title


def list_tasks(team, user, status=None, priority=None, mine=False):
    """Incomplete tasks first, then by priority, newest first."""
    require_membership(team, user)
    qs = Task.objects.filter(team=team).select_related("assigned_to", "created_by", "completed_by")
    if mine:
        qs = qs.filter(assigned_to=user)
    if status:
        qs = qs.filter(status=status)
    if priority:
        qs = qs.filter(priority=priority)
    return qs.order_by("completed", "priority", "-created_at")


def create_task(team, user, title, priority=TaskPriority.P2, assigned_to=None,
                category="", due_date=None, notes=""):
    with transaction.atomic():
        require_membership(team, user)
        task = Task.objects.create(
            team=team,
            title=_clean_title(title),
            priority=parse_priority(priority or TaskPriority.P2),
            status=TaskStatus.TODO,
            assigned_to=require_assignee(team, assigned_to),
            category=category or "",
            due_date=due_date,
            notes=notes or "",
            created_by=user,
        )
        activity.record(
            team, user, ActivityAction.TASK_CREATED, task=task,
            details={"priority": task.priority},
        )
        notify(team.pk, "task_created", {
            "user_name": user.name,
            "task_title": task.title,
            "priority": task.priority,
        })

    logger.info(f"Task {task.pk} created in team {team.pk} by user {user.pk}")
    return task


def edit_task(team, task_id, user, **changes):
    """Update plain fields. Status is only ever changed through ``lifecycle``."""
    with transaction.atomic():
        require_membership(team, user)
        task = require_task(team, task_id, for_update=True)

        changed = []
        for field in EDITABLE_FIELDS:
            if field not in changes:
                continue
            value = changes[field]
            if field == "title":
                value = _clean_title(value)
            elif field == "priority":
                value = parse_priority(value)
            elif field in ("category", "notes"):
                value = value or ""
            if getattr(task, field) != value:
                setattr(task, field, value)
                changed.append(field)

        if changed:
            task.save(update_fields=changed + ["updated_at"])
            activity.record(
                team, user, ActivityAction.TASK_EDITED, task=task,
                details={"fields": changed},
            )
    return task


def assign_task(team, task_id, user, assignee_id):
    with transaction.atomic():
        membership = require_membership(team, user)
        task = require_task(team, task_id, for_update=True)
        require_creator_or_admin(task, membership, "assign")

        assignee = require_assignee(team, assignee_id)
        task.assigned_to = assignee
        task.save(update_fields=["assigned_to", "updated_at"])

        details = {"assigned_to": assignee.pk if assignee else None}
        if assignee is not None:
            details["assignee_name"] = assignee.name
        activity.record(team, user, ActivityAction.TASK_ASSIGNED, task=task, details=details)
        notify(team.pk, "task_assigned", {
            "user_name": user.name,
            "task_title": task.title,
            **details,
        })
    return task


def delete_task(team, task_id, user):
    """Delete a task together with its dependency edges and comments."""
    with transaction.atomic():
        membership = require_membership(team, user)
        task = require_task(team, task_id, for_update=True)
        require_creator_or_admin(task, membership, "delete")

        title, pk = task.title, task.pk
        task.delete()
        activity.record(
            team, user, ActivityAction.TASK_DELETED, task=None, task_title=title,
            details={"task_id": pk},
        )
        notify(team.pk, "task_deleted", {"user_name": user.name, "task_title": title})

    logger.info(f"Task {pk} deleted from team {team.pk} by user {user.pk}")
    return pk


def list_comments(team, task_id, user):
    require_membership(team, user)
    task = require_task(team, task_id)
    return task.comments.select_related("author").order_by("-created_at")


def add_comment(team, task_id, user, body):
    body = (body or "").strip()
    if not body:
        raise ValidationFailed("Comment body required")

    with transaction.atomic():
        require_membership(team, user)
        task = require_task(team, task_id)
        comment = Comment.objects.create(task=task, team=team, author=user, body=body)
        activity.record(
            team, user, ActivityAction.COMMENT_ADDED, task=task,
            details={"comment_id": comment.pk},
        )
        notify(team.pk, "comment_added", {
            "user_name": user.name,
            "task_title": task.title,
            "comment": body[:200],
        })
    return comment
