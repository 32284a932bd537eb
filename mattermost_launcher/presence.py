"""Presence status: kinds, "last seen" text and setting your own status."""
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import TYPE_CHECKING, List, Optional

from .log import get_logger

if TYPE_CHECKING:
    from .api_interface import MattermostClient

logger = get_logger("presence")


class PresenceKind(str, Enum):
    ONLINE = "online"
    AWAY = "away"
    DND = "dnd"
    OFFLINE = "offline"

    @classmethod
    def _missing_(cls, value):
        # statuses we have no kind for (e.g. "out_of_office") show as offline
        return cls.OFFLINE

    @property
    def label(self) -> str:
        return _TITLES[self]


_TITLES = {
    PresenceKind.ONLINE: "Online",
    PresenceKind.AWAY: "Away",
    PresenceKind.DND: "Do not disturb",
    PresenceKind.OFFLINE: "Offline",
}

# order the status picker lists them in
AVAILABLE_KINDS = (PresenceKind.ONLINE, PresenceKind.AWAY, PresenceKind.OFFLINE, PresenceKind.DND)


class CustomStatusDuration(str, Enum):
    DONT_CLEAR = ""
    THIRTY_MINUTES = "thirty_minutes"
    ONE_HOUR = "one_hour"
    FOUR_HOURS = "four_hours"
    TODAY = "today"
    THIS_WEEK = "this_week"
    DATE_AND_TIME = "date_and_time"


@dataclass
class CurrentPresence:
    user_id: str
    current: PresenceKind
    available: List[PresenceKind]


def describe_last_activity(last_activity_at: int, now: Optional[datetime] = None) -> Optional[str]:
    """Format a millisecond timestamp as 'time ago' text."""
    if not last_activity_at:
        return None
    now = now or datetime.now(timezone.utc)
    then = datetime.fromtimestamp(last_activity_at / 1000, tz=timezone.utc)
    diff = now - then
    if diff.days > 0:
        return f"{diff.days}d ago"
    if diff.days < 0 or diff.seconds < 60:
        return "just now"
    if diff.seconds < 3600:
        return f"{diff.seconds // 60}m ago"
    return f"{diff.seconds // 3600}h ago"


def available_statuses(current: PresenceKind) -> List[PresenceKind]:
    return [kind for kind in AVAILABLE_KINDS if kind != current]


def duration_to_expire_date(duration: str, now: Optional[datetime] = None) -> Optional[datetime]:
    """When a custom status set for ``duration`` should expire.

    "today" and "this_week" end at local midnight (end of Sunday for the
    week). Durations without a computable end return None.
    """
    now = now or datetime.now().astimezone()
    kind = CustomStatusDuration(duration)
    if kind == CustomStatusDuration.THIRTY_MINUTES:
        return now + timedelta(minutes=30)
    if kind == CustomStatusDuration.ONE_HOUR:
        return now + timedelta(hours=1)
    if kind == CustomStatusDuration.FOUR_HOURS:
        return now + timedelta(hours=4)

    end_of_day = now.replace(hour=23, minute=59, second=59, microsecond=999000)
    if kind == CustomStatusDuration.TODAY:
        return end_of_day
    if kind == CustomStatusDuration.THIS_WEEK:
        return end_of_day + timedelta(days=6 - now.weekday())
    return None


def current_presence(client: "MattermostClient") -> CurrentPresence:
    status = client.get_profile_status()
    current = PresenceKind(status.status)
    return CurrentPresence(status.user_id, current, available_statuses(current))


def set_presence(client: "MattermostClient", user_id: str, kind: PresenceKind) -> CurrentPresence:
    logger.debug("Setting status of %s to %s", user_id, kind.value)
    client.set_profile_status(user_id, kind.value)
    return CurrentPresence(user_id, kind, available_statuses(kind))
