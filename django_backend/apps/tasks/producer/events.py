import logging
from enum import Enum
from typing import Dict, Any, Optional

from apps.common.events import EventPayload
from apps.common.events.base import EventPublisherFactory
from apps.common.kafka.config import TASK_EVENTS_TOPIC

logger = logging.getLogger(__name__)


class TaskEventType(Enum):
    """Task event types"""
    # Task lifecycle
    TASK_CREATED = "task_created"
    TASK_COMPLETED = "task_completed"
    TASK_DELETED = "task_deleted"
    TASK_ASSIGNED = "task_assigned"
    STATUS_CHANGED = "status_changed"

    # Rewards
    LEVEL_UP = "level_up"

    # Comments
    COMMENT_ADDED = "comment_added"


def publish_task_event(
    event_type: TaskEventType,
    team_id: int,
    data: Dict[str, Any],
    user_id: Optional[int] = None,
    metadata: Optional[Dict[str, Any]] = None
) -> bool:
    """
    Publish a team task event using the abstraction layer

    Args:
        event_type: Type of task event
        team_id: Team the event belongs to, also the partition key
        data: Event-specific data
        user_id: ID of the user performing the action (optional)
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

        # Partition by team so a team's events stay ordered
        success = publisher.publish(
            topic=TASK_EVENTS_TOPIC,
            event=payload,
            key=str(team_id)
        )

        if success:
            logger.info(f"Task event published successfully: {event_type.value}")
        else:
            logger.error(f"Failed to publish task event: {event_type.value}")

        return success

    except Exception as e:
        logger.error(f"Error publishing task event {event_type.value}: {str(e)}")
        return False
