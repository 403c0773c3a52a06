"""Lookups shared by the task services. All of them are scoped to one team."""
from apps.common.exceptions import Forbidden, NotFound, ValidationFailed
from apps.tasks.models import Task, TaskPriority, TaskStatus
from apps.users.models import TeamMembership, TeamRole


def parse_status(value) -> TaskStatus:
    try:
        return TaskStatus(value)
    except ValueError:
        raise ValidationFailed(
            f"Invalid status '{value}'. Use one of: {', '.join(TaskStatus.values)}"
        )


def parse_priority(value) -> TaskPriority:
    try:
        return TaskPriority(value)
    except ValueError:
        raise ValidationFailed(
            f"Invalid priority '{value}'. Use one of: {', '.join(TaskPriority.values)}"
        )


def parse_id(value, label="Task") -> int:
    """Ids arrive as URL or body text. Anything that is not an integer cannot exist."""
    try:
        return int(value)
    except (TypeError, ValueError):
        raise NotFound(f"{label} not found")


def require_membership(team, user, for_update=False) -> TeamMembership:
    qs = TeamMembership.objects.filter(team=team, user_id=getattr(user, "pk", None))
    if for_update:
        qs = qs.select_for_update()
    membership = qs.first()
    if membership is None:
        raise Forbidden("Not a member of this team")
    return membership


def require_task(team, task_id, for_update=False) -> Task:
    qs = Task.objects.filter(team=team, pk=parse_id(task_id))
    if for_update:
        qs = qs.select_for_update()
    task = qs.first()
    if task is None:
        raise NotFound("Task not found")
    return task


def require_creator_or_admin(task, membership, action):
    if task.created_by_id == membership.user_id or membership.role == TeamRole.ADMIN:
        return
    raise Forbidden(f"Only task creator or admin can {action}")


def require_assignee(team, user_id):
    """Resolve an assignee id to a team member, or None to unassign."""
    if user_id is None:
        return None
    membership = (
        TeamMembership.objects.select_related("user")
        .filter(team=team, user_id=user_id)
        .first()
    )
    if membership is None:
        raise ValidationFailed("Assignee must be a member of this team")
    return membership.user
