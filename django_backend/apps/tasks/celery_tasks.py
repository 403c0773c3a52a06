import json
import logging

import requests
from asgiref.sync import async_to_sync
from celery import shared_task
from channels.layers import get_channel_layer
from django.conf import settings

from apps.tasks.models import ActivityEntry
from apps.tasks.producer import TaskEventType, publish_task_event
from apps.tasks.websockets.consumers import activity_group_name
from apps.users.models import Team

logger = logging.getLogger(__name__)


def format_webhook_message(event_kind, payload, team_name):
    """Slack/Discord compatible one-line summary of an event."""
    prefix = f"[{team_name}]"
    user = payload.get("user_name", "Someone")
    title = payload.get("task_title", "")

    if event_kind == "task_completed":
        return f'{prefix} {user} completed "{title}" (+{payload.get("xp_earned", 0)} XP)'
    if event_kind == "task_created":
        return f'{prefix} {user} created a new task: "{title}"'
    if event_kind == "level_up":
        return f'{prefix} {user} leveled up to Level {payload.get("new_level")} - {payload.get("new_rank")}!'
    if event_kind == "status_changed":
        return f'{prefix} {user} moved "{title}" from {payload.get("from")} to {payload.get("to")}'
    if event_kind == "task_assigned":
        assignee = payload.get("assignee_name")
        if assignee:
            return f'{prefix} {user} assigned "{title}" to {assignee}'
        return f'{prefix} {user} unassigned "{title}"'
    if event_kind == "task_deleted":
        return f'{prefix} {user} deleted "{title}"'
    if event_kind == "comment_added":
        return f'{prefix} {user} commented on "{title}"'
    return f"{prefix} {event_kind}: {json.dumps(payload)}"


def _webhook_wants(hooks, event_kind):
    if not hooks.get("enabled") or not hooks.get("url"):
        return False
    events = hooks.get("events")
    return not events or event_kind in events


def _post_webhook(team, event_kind, payload):
    hooks = team.webhook_settings
    if not _webhook_wants(hooks, event_kind):
        return False

    text = format_webhook_message(event_kind, payload, team.name)
    try:
        response = requests.post(
            hooks["url"],
            json={"text": text},
            timeout=settings.TASK_WEBHOOK_TIMEOUT,
        )
        response.raise_for_status()
    except requests.RequestException as e:
        logger.warning(f"Webhook dispatch error for team {team.pk}: {e}")
        return False
    return True


@shared_task
def send_task_notification(team_id, event_kind, payload):
    """
    Deliver one team event: publish it to the task-events topic and post it
    to the team's webhook when the webhook is enabled for ``event_kind``.

    Delivery problems are logged; the task itself never raises for them.
    """
    try:
        event_type = TaskEventType(event_kind)
    except ValueError:
        logger.error(f"Unknown task event kind: {event_kind}")
        return {"published": False, "webhook": False}

    published = publish_task_event(event_type, team_id, payload)

    team = Team.objects.filter(pk=team_id).first()
    if team is None:
        logger.warning(f"Team {team_id} not found, skipping webhook for {event_kind}")
        return {"published": published, "webhook": False}

    return {"published": published, "webhook": _post_webhook(team, event_kind, payload)}


@shared_task
def broadcast_activity(entry_id):
    """Push a journal entry to everyone watching the team's activity stream."""
    from apps.tasks.api.serializers import ActivityEntrySerializer

    entry = ActivityEntry.objects.select_related("user").filter(pk=entry_id).first()
    if entry is None:
        return False

    try:
        channel_layer = get_channel_layer()
        async_to_sync(channel_layer.group_send)(
            activity_group_name(entry.team_id),
            {
                "type": "activity.entry",
                "entry": dict(ActivityEntrySerializer(entry).data),
            }
        )
        return True

    except Exception as e:
        logger.error(f"Error broadcasting activity entry {entry_id}: {e}")
        return False
