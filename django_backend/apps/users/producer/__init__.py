from .events import (
    UserEventType,
    publish_user_event,
    publish_user_registered,
    publish_team_created,
    publish_team_deleted,
    publish_team_webhooks_updated,
    publish_team_member_added,
    publish_team_member_removed,
    publish_team_member_role_changed,
    publish_team_member_left,
    publish_team_member_joined,
)

__all__ = [
    "UserEventType",
    "publish_user_event",
    "publish_user_registered",
    "publish_team_created",
    "publish_team_deleted",
    "publish_team_webhooks_updated",
    "publish_team_member_added",
    "publish_team_member_removed",
    "publish_team_member_role_changed",
    "publish_team_member_left",
    "publish_team_member_joined",
]
