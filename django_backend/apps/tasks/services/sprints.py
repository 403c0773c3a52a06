"""Sprints group a team's tasks over a date range.

Any member can read sprints and move tasks in and out of them. Creating and
editing a sprint needs a team admin.
"""
import logging

from django.db import transaction
from django.db.models import Count, Q

from apps.common.exceptions import Forbidden, NotFound, ValidationFailed
from apps.tasks.models import Sprint, SprintStatus, Task, TaskStatus
from apps.tasks.services.access import parse_id, require_membership
from apps.users.models import TeamRole

logger = logging.getLogger(__name__)

EDITABLE_FIELDS = ("name", "status", "goals")


def _require_admin(team, user):
    membership = require_membership(team, user)
    if membership.role != TeamRole.ADMIN:
        raise Forbidden("Team admin access required")
    return membership


def _clean_goals(goals):
    if goals is None:
        return []
    if not isinstance(goals, list) or not all(isinstance(g, str) for g in goals):
        raise ValidationFailed("Goals must be a list of strings")
    return goals


def list_sprints(team, user):
    """Newest first, each annotated with ``task_count`` and ``completed_count``."""
    require_membership(team, user)
    return (
        Sprint.objects.filter(team=team)
        .select_related("created_by")
        .annotate(
            task_count=Count("tasks", distinct=True),
            completed_count=Count("tasks", filter=Q(tasks__status=TaskStatus.DONE), distinct=True),
        )
    )


def get_sprint(team, sprint_id):
    sprint = Sprint.objects.filter(team=team, pk=parse_id(sprint_id, "Sprint")).first()
    if sprint is None:
        raise NotFound("Sprint not found")
    return sprint


def sprint_tasks(sprint):
    return sprint.tasks.select_related("assigned_to").order_by("priority", "created_at")


def create_sprint(team, user, name, start_date, end_date, goals=None):
    _require_admin(team, user)
    name = (name or "").strip()
    if not name or start_date is None or end_date is None:
        raise ValidationFailed("Name, start date, and end date required")
    if end_date < start_date:
        raise ValidationFailed("Sprint cannot end before it starts")

    sprint = Sprint.objects.create(
        team=team,
        name=name,
        start_date=start_date,
        end_date=end_date,
        goals=_clean_goals(goals),
        created_by=user,
    )
    logger.info(f"Sprint {sprint.pk} created in team {team.pk} by user {user.pk}")
    return sprint


def update_sprint(team, sprint_id, user, **changes):
    """Change name, status or goals. Dates are fixed once a sprint exists."""
    _require_admin(team, user)
    changes = {k: v for k, v in changes.items() if k in EDITABLE_FIELDS and v not in (None, "")}
    if not changes:
        raise ValidationFailed("No updates provided")
    if "status" in changes and changes["status"] not in SprintStatus.values:
        raise ValidationFailed(
            f"Invalid status '{changes['status']}'. Use one of: {', '.join(SprintStatus.values)}"
        )
    if "goals" in changes:
        changes["goals"] = _clean_goals(changes["goals"])

    with transaction.atomic():
        sprint = get_sprint(team, sprint_id)
        for field, value in changes.items():
            setattr(sprint, field, value)
        sprint.save(update_fields=list(changes))

    logger.info(f"Sprint {sprint.pk} updated: {', '.join(changes)}")
    return sprint


def add_task(team, sprint_id, user, task_id):
    """Adding a task that is already in the sprint is a no-op."""
    require_membership(team, user)
    sprint = get_sprint(team, sprint_id)
    task = Task.objects.filter(team=team, pk=parse_id(task_id)).first()
    if task is None:
        raise NotFound("Task not found in this team")
    sprint.tasks.add(task)
    logger.debug(f"Task {task.pk} added to sprint {sprint.pk}")
    return sprint


def remove_task(team, sprint_id, user, task_id):
    """Removing a task that is not in the sprint is a no-op."""
    require_membership(team, user)
    sprint = get_sprint(team, sprint_id)
    sprint.tasks.remove(*Task.objects.filter(team=team, pk=parse_id(task_id)))
    logger.debug(f"Task {task_id} removed from sprint {sprint.pk}")
