"""
WebSocket consumer for the live team activity stream.

Every journal entry is pushed to the ``team_activity_<team_id>`` group after
its transaction commits; members connected to
``ws/teams/<team_id>/activity/`` receive it as JSON.
"""
import logging

from channels.db import database_sync_to_async
from channels.generic.websocket import AsyncJsonWebsocketConsumer

from apps.users.models import TeamMembership

logger = logging.getLogger(__name__)


def activity_group_name(team_id):
    return f"team_activity_{team_id}"


class TeamActivityConsumer(AsyncJsonWebsocketConsumer):
    """Read-only activity feed for one team."""

    async def connect(self):
        self.team_id = self.scope["url_route"]["kwargs"]["team_id"]
        self.group_name = activity_group_name(self.team_id)

        user = self.scope.get("user")
        if not user or not user.is_authenticated:
            logger.info(f"Activity stream for team {self.team_id} rejected: not authenticated")
            await self.close(code=4001)
            return

        if not await self.is_team_member(user):
            logger.info(f"Activity stream for team {self.team_id} rejected for user {user.pk}")
            await self.close(code=4003)
            return

        await self.channel_layer.group_add(self.group_name, self.channel_name)
        await self.accept()

    async def disconnect(self, close_code):
        if hasattr(self, "group_name"):
            await self.channel_layer.group_discard(self.group_name, self.channel_name)

    async def receive_json(self, content, **kwargs):
        if content.get("type") == "ping":
            await self.send_json({"type": "pong"})

    async def activity_entry(self, event):
        await self.send_json({"type": "activity.entry", "entry": event["entry"]})

    @database_sync_to_async
    def is_team_member(self, user):
        return TeamMembership.objects.filter(team_id=self.team_id, user_id=user.pk).exists()
