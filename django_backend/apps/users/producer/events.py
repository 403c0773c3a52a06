import logging
from enum import Enum
from typing import Dict, Any, Optional

from apps.common.events import EventPayload
from apps.common.events.base import EventPublisherFactory
from apps.common.kafka.config import USER_ACTIVITIES_TOPIC

logger = logging.getLogger(__name__)


class UserEventType(Enum):
    """User and team membership event types"""
    # Accounts
    USER_REGISTERED = "user_registered"

    # Teams
    TEAM_CREATED = "team_created"
    TEAM_DELETED = "team_deleted"
    TEAM_WEBHOOKS_UPDATED = "team_webhooks_updated"
    TEAM_MEMBER_ADDED = "team_member_added"
    TEAM_MEMBER_REMOVED = "team_member_removed"
    TEAM_MEMBER_ROLE_CHANGED = "team_member_role_changed"
    TEAM_MEMBER_LEFT = "team_member_left"
    TEAM_MEMBER_JOINED = "team_member_joined"


def publish_user_event(
    event_type: UserEventType,
    user_id: int,
    data: Dict[str, Any],
    team_id: Optional[int] = None,
    metadata: Optional[Dict[str, Any]] = None
) -> bool:
    """
    Publish user activity event using the abstraction layer

    Args:
        event_type: Type of user event
        user_id: ID of the user performing the action
        data: Event-specific data
        team_id: Team the event concerns (optional)
        metadata: Additional metadata (optional)

    Returns:
        bool: True if event was published successfully
    """
    try:
        payload = EventPayload(
            event_type=event_type.value,
            user_id=user_id,
            team_id=team_id,
            data=data,
            metadata=metadata
        )

        publisher = EventPublisherFactory.get_publisher()

        # Partition by user
        success = publisher.publish(
            topic=USER_ACTIVITIES_TOPIC,
            event=payload,
            key=str(user_id)
        )

        if success:
            logger.info(f"User event published successfully: {event_type.value}")
        else:
            logger.error(f"Failed to publish user event: {event_type.value}")

        return success

    except Exception as e:
        logger.error(f"Error publishing user event {event_type.value}: {str(e)}")
        return False

# Convenience functions for specific events

def publish_user_registered(user_id: int, username: str, email: str):
    """Publishes user registration event"""
    data = {
        'username': username,
        'email': email,
    }
    return publish_user_event(UserEventType.USER_REGISTERED, user_id, data)

def publish_team_created(user_id: int, team_id: int, team_name: str):
    """Publishes team creation event"""
    data = {
        'team_name': team_name,
        'action': 'create'
    }
    return publish_user_event(UserEventType.TEAM_CREATED, user_id, data, team_id=team_id)

def publish_team_deleted(user_id: int, team_id: int, team_name: str):
    """Publishes team deletion event"""
    data = {
        'team_name': team_name,
        'action': 'delete'
    }
    return publish_user_event(UserEventType.TEAM_DELETED, user_id, data, team_id=team_id)

def publish_team_webhooks_updated(user_id: int, team_id: int, enabled: bool):
    """Publishes webhook settings change event"""
    data = {
        'enabled': enabled,
        'action': 'update_webhooks'
    }
    return publish_user_event(UserEventType.TEAM_WEBHOOKS_UPDATED, user_id, data, team_id=team_id)

def publish_team_member_added(admin_user_id: int, team_id: int, member_id: int, role: str):
    """Publishes team member addition event"""
    data = {
        'member_id': member_id,
        'role': role,
        'action': 'add_member'
    }
    return publish_user_event(UserEventType.TEAM_MEMBER_ADDED, admin_user_id, data, team_id=team_id)

def publish_team_member_removed(admin_user_id: int, team_id: int, member_id: int):
    """Publishes team member removal event"""
    data = {
        'member_id': member_id,
        'action': 'remove_member'
    }
    return publish_user_event(UserEventType.TEAM_MEMBER_REMOVED, admin_user_id, data, team_id=team_id)

def publish_team_member_role_changed(admin_user_id: int, team_id: int, member_id: int,
                                     old_role: str, new_role: str):
    """Publishes team member role change event"""
    data = {
        'member_id': member_id,
        'old_role': old_role,
        'new_role': new_role,
        'action': 'change_role'
    }
    return publish_user_event(UserEventType.TEAM_MEMBER_ROLE_CHANGED, admin_user_id, data, team_id=team_id)

def publish_team_member_left(user_id: int, team_id: int):
    """Publishes user leaving team event"""
    data = {
        'action': 'leave_team'
    }
    return publish_user_event(UserEventType.TEAM_MEMBER_LEFT, user_id, data, team_id=team_id)

def publish_team_member_joined(user_id: int, team_id: int):
    """Publishes user joining a team by its code"""
    data = {
        'action': 'join_team'
    }
    return publish_user_event(UserEventType.TEAM_MEMBER_JOINED, user_id, data, team_id=team_id)
