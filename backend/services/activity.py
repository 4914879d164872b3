"""Activity log records: newest first, capped at ``ACTIVITY_LIMIT`` entries."""

import uuid
from datetime import datetime
from typing import List, Optional

from schemas.activities import Activity, ActivityAction
from schemas.base import ResourceType, utcnow

ACTIVITY_LIMIT = 50


def new_activity(
    action: ActivityAction,
    resource_type: ResourceType,
    resource_id: str,
    resource_name: str,
    parent_name: Optional[str] = None,
    timestamp: Optional[datetime] = None,
) -> Activity:
    return Activity(
        id=str(uuid.uuid4()),
        action=action,
        type=resource_type,
        resource_id=resource_id,
        resource_name=resource_name,
        parent_name=parent_name,
        timestamp=timestamp or utcnow(),
    )


def prepend_activity(activities: List[Activity], activity: Activity, limit: int = ACTIVITY_LIMIT) -> List[Activity]:
    """Return a new list with ``activity`` first and the oldest entries dropped."""
    return [activity, *activities][:limit]


def recent_activities(activities: List[Activity], limit: int = 10) -> List[Activity]:
    return list(activities[: max(limit, 0)])
