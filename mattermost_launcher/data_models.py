"""
Data models for the Mattermost launcher.

Wire models mirror the JSON the /api/v4 endpoints return (only the fields we
use). Read-model types are what the channel list displays.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, FrozenSet, List, Optional, Tuple

# Channel.type values
CHANNEL_OPEN = "O"
CHANNEL_PRIVATE = "P"
CHANNEL_GROUP = "G"
CHANNEL_DIRECT = "D"

# ChannelRecord.kind values
KIND_DIRECT = "direct"
KIND_GROUP = "group"
KIND_PUBLIC = "public"
KIND_PRIVATE = "private"


@dataclass
class Team:
    """A team the user belongs to."""
    id: str
    name: str
    display_name: str = ""

    @classmethod
    def from_api(cls, data: Dict[str, Any]) -> "Team":
        return cls(id=data["id"], name=data.get("name") or "", display_name=data.get("display_name") or "")


@dataclass
class Channel:
    """A channel membership, as returned by /users/me/teams/{id}/channels."""
    id: str
    type: str
    name: str
    display_name: str = ""
    header: str = ""
    purpose: str = ""

    @property
    def is_direct(self) -> bool:
        return self.type == CHANNEL_DIRECT

    @classmethod
    def from_api(cls, data: Dict[str, Any]) -> "Channel":
        return cls(
            id=data["id"],
            type=data.get("type") or CHANNEL_OPEN,
            name=data.get("name") or "",
            display_name=data.get("display_name") or "",
            header=data.get("header") or "",
            purpose=data.get("purpose") or "",
        )


@dataclass
class ChannelCategory:
    """A sidebar category; channel_ids order is the display order."""
    id: str
    display_name: str
    channel_ids: List[str] = field(default_factory=list)

    @classmethod
    def from_api(cls, data: Dict[str, Any]) -> "ChannelCategory":
        return cls(
            id=data.get("id") or "",
            display_name=data.get("display_name") or "",
            channel_ids=list(data.get("channel_ids") or []),
        )


@dataclass
class UserProfile:
    id: str
    username: str
    first_name: str = ""
    last_name: str = ""
    nickname: str = ""
    email: str = ""
    position: str = ""

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()

    @classmethod
    def from_api(cls, data: Dict[str, Any]) -> "UserProfile":
        return cls(
            id=data["id"],
            username=data.get("username") or "",
            first_name=data.get("first_name") or "",
            last_name=data.get("last_name") or "",
            nickname=data.get("nickname") or "",
            email=data.get("email") or "",
            position=data.get("position") or "",
        )


@dataclass
class UserProfileStatus:
    user_id: str
    status: str
    # milliseconds since the epoch, 0 when the server doesn't know
    last_activity_at: int = 0
    manual: bool = False

    @classmethod
    def from_api(cls, data: Dict[str, Any]) -> "UserProfileStatus":
        return cls(
            user_id=data["user_id"],
            status=data.get("status") or "offline",
            last_activity_at=int(data.get("last_activity_at") or 0),
            manual=bool(data.get("manual") or False),
        )


@dataclass
class UnreadMessageCount:
    """Channel membership counters from /users/me/teams/{id}/channels/members."""
    channel_id: str
    mention_count: Optional[int] = None
    msg_count: int = 0

    @classmethod
    def from_api(cls, data: Dict[str, Any]) -> "UnreadMessageCount":
        mentions = data.get("mention_count")
        return cls(
            channel_id=data["channel_id"],
            mention_count=int(mentions) if mentions is not None else None,
            msg_count=int(data.get("msg_count") or 0),
        )


@dataclass
class CustomProfileStatus:
    emoji_code: str = ""
    text: str = ""
    duration: Optional[str] = None
    expires_at: Optional[datetime] = None


# ───────── read model ─────────

@dataclass(frozen=True)
class Presence:
    kind: str
    last_activity_at: int = 0
    # relative "5m ago" text, only filled in when kind isn't online
    last_seen: Optional[str] = None


@dataclass(frozen=True)
class ChannelRecord:
    """One row of the channel list."""
    id: str
    kind: str
    title: str
    mention_name: str
    path: str
    keywords: FrozenSet[str] = frozenset()
    subtitle: Optional[str] = None
    email: Optional[str] = None
    mention_count: Optional[int] = None
    presence: Optional[Presence] = None

    @property
    def has_mentions(self) -> bool:
        return bool(self.mention_count and self.mention_count > 0)


@dataclass(frozen=True)
class ChannelGroup:
    name: str
    records: Tuple[ChannelRecord, ...] = ()
    # True for the computed "Unread Messages" group
    virtual: bool = False

    @property
    def count_label(self) -> str:
        return str(len(self.records))
