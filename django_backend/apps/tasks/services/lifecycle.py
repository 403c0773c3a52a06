"""
Task status transitions.

``set_status`` is the single entry point that writes ``status``, the legacy
``completed`` flag, the blocker fields and the completion fields. The
caller's membership row is locked before the task row, so two concurrent
completions of one task serialize and only the first one is rewarded.
"""
import logging
from dataclasses import dataclass
from typing import Optional

from django.db import transaction
from django.utils import timezone

from apps.common.exceptions import Conflict
from apps.tasks import rewards
from apps.tasks.models import ActivityAction, Task, TaskStatus
from apps.tasks.services import activity
from apps.tasks.services.access import parse_status, require_membership, require_task
from apps.tasks.services.notifications import notify
from apps.users.models import TeamMembership

logger = logging.getLogger(__name__)

_TASK_FIELDS = [
    "status",
    "status_updated_at",
    "blocker_note",
    "blocker_since",
    "completed",
    "completed_by",
    "completed_at",
    "updated_at",
]

_REWARD_FIELDS = ["xp", "today_xp", "streak", "tasks_completed", "last_completed_date"]


@dataclass
class TransitionResult:
    task: Task
    membership: TeamMembership
    previous_status: str
    reward: Optional[rewards.CompletionReward] = None

    def as_dict(self):
        data = {
            "status": self.task.status,
            "previous_status": self.previous_status,
            "completed": self.task.completed,
        }
        if self.reward is not None:
            data.update(
                xp_earned=self.reward.xp_earned,
                new_xp=self.reward.xp,
                leveled_up=self.reward.leveled_up,
                new_level=self.reward.rank.level,
                new_rank=self.reward.rank.name,
                streak=self.reward.streak,
                today_xp=self.reward.today_xp,
            )
        return data


def set_status(team, task_id, user, new_status, blocker_note=None) -> TransitionResult:
    status = parse_status(new_status)
    with transaction.atomic():
        membership = require_membership(team, user, for_update=True)
        task = require_task(team, task_id, for_update=True)
        return _transition(team, task, membership, user, status, blocker_note)


def complete_task(team, task_id, user) -> TransitionResult:
    result = set_status(team, task_id, user, TaskStatus.DONE)
    if result.reward is None:
        raise Conflict("Task already completed")
    return result


def uncomplete_task(team, task_id, user) -> TransitionResult:
    return set_status(team, task_id, user, TaskStatus.TODO)


def _transition(team, task, membership, user, status, blocker_note):
    previous = task.status
    was_completed = task.completed

    if status == TaskStatus.DONE and was_completed:
        logger.debug(f"Task {task.pk} already completed, nothing to award")
        return TransitionResult(task=task, membership=membership, previous_status=previous)

    if status == previous and status != TaskStatus.BLOCKED:
        logger.debug(f"Task {task.pk} already {status}, nothing to change")
        return TransitionResult(task=task, membership=membership, previous_status=previous)

    now = timezone.now()
    task.status = status
    task.status_updated_at = now

    if status == TaskStatus.BLOCKED:
        task.blocker_note = blocker_note or None
        task.blocker_since = now
    else:
        task.blocker_note = None
        task.blocker_since = None

    reward = None
    if status == TaskStatus.DONE:
        task.completed = True
        task.completed_by_id = membership.user_id
        task.completed_at = now
        reward = rewards.apply_completion(membership, task.priority, timezone.localdate())
        for field in _REWARD_FIELDS:
            setattr(membership, field, getattr(reward, field))
        membership.save(update_fields=_REWARD_FIELDS)
    elif was_completed:
        # Reopening keeps the XP already awarded.
        task.completed = False
        task.completed_by = None
        task.completed_at = None

    task.save(update_fields=_TASK_FIELDS)

    if reward is not None:
        _record_completion(team, task, user, reward)
    else:
        _record_status_change(team, task, user, previous, status, reopened=was_completed)

    logger.info(f"Task {task.pk} moved {previous} -> {status} by user {user.pk}")
    return TransitionResult(
        task=task, membership=membership, previous_status=previous, reward=reward
    )


def _record_completion(team, task, user, reward):
    activity.record(
        team,
        user,
        ActivityAction.TASK_COMPLETED,
        task=task,
        xp_earned=reward.xp_earned,
        details={"priority": task.priority},
    )
    notify(team.pk, "task_completed", {
        "user_name": user.name,
        "task_title": task.title,
        "xp_earned": reward.xp_earned,
    })

    if reward.leveled_up:
        activity.record(
            team,
            user,
            ActivityAction.LEVEL_UP,
            task=task,
            details={"new_level": reward.rank.level, "rank": reward.rank.name},
        )
        notify(team.pk, "level_up", {
            "user_name": user.name,
            "new_level": reward.rank.level,
            "new_rank": reward.rank.name,
        })


def _record_status_change(team, task, user, previous, status, reopened=False):
    details = {"from": str(previous), "to": str(status)}
    if status == TaskStatus.BLOCKED and task.blocker_note:
        details["blocker_note"] = task.blocker_note
    if reopened:
        details["reopened"] = True

    activity.record(team, user, ActivityAction.STATUS_CHANGED, task=task, details=details)
    notify(team.pk, "status_changed", {
        "user_name": user.name,
        "task_title": task.title,
        **details,
    })
