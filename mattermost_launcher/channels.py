"""
Channel list assembly.

build_channel_view() fetches everything a team's channel list needs in
parallel and joins it into ChannelGroups: one per sidebar category, plus an
"Unread Messages" group up front when anything mentions you.
"""
from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from datetime import datetime
from typing import TYPE_CHECKING, Dict, Iterable, List, Optional, Sequence, Tuple

from .data_models import (
    CHANNEL_GROUP,
    CHANNEL_OPEN,
    KIND_DIRECT,
    KIND_GROUP,
    KIND_PRIVATE,
    KIND_PUBLIC,
    Channel,
    ChannelCategory,
    ChannelGroup,
    ChannelRecord,
    Presence,
    Team,
    UnreadMessageCount,
    UserProfile,
    UserProfileStatus,
)
from .log import get_logger
from .presence import PresenceKind, describe_last_activity

if TYPE_CHECKING:
    from .api_interface import MattermostClient

logger = get_logger("channels")

UNREAD_GROUP_NAME = "Unread Messages"
# direct channel names are "<user id>__<user id>"
DIRECT_NAME_SEPARATOR = "__"
MAX_FETCH_WORKERS = 5


class TeamSelectionError(Exception):
    """No single team can be picked; ``available`` lists the team names."""

    def __init__(self, message: str, available: Sequence[str] = ()):
        super().__init__(message)
        self.available = list(available)


@dataclass
class TeamView:
    team: Team
    profile: UserProfile
    groups: List[ChannelGroup]


def direct_peer_id(channel_name: str, own_id: str) -> str:
    """The other participant of a direct channel; yourself for a self-chat."""
    for member_id in channel_name.split(DIRECT_NAME_SEPARATOR):
        if member_id and member_id != own_id:
            return member_id
    return own_id


def select_team(teams: Sequence[Team], team_name: Optional[str] = None) -> Team:
    names = [team.name for team in teams]
    if not teams:
        raise TeamSelectionError("You are not on any team")
    if len(teams) == 1:
        return teams[0]
    if not team_name:
        raise TeamSelectionError(
            "You are on multiple teams, set MATTERMOST_TEAM_NAME. Available teams: " + ", ".join(names),
            names,
        )
    for team in teams:
        if team.name.lower() == team_name.lower():
            return team
    raise TeamSelectionError(
        f"Team with name {team_name} not found. Available teams: " + ", ".join(names),
        names,
    )


def _keywords(values: Iterable[Optional[str]]) -> frozenset:
    return frozenset(v for v in values if v)


def _direct_record(chat: Channel, profile: UserProfile, unread: Optional[UnreadMessageCount],
                   status: Optional[UserProfileStatus], now: Optional[datetime]) -> ChannelRecord:
    return ChannelRecord(
        id=chat.id,
        kind=KIND_DIRECT,
        title=profile.full_name or profile.username,
        mention_name="@" + profile.username,
        path="/messages/@" + profile.username,
        subtitle="@" + profile.username,
        email=profile.email or None,
        keywords=_keywords(
            [
                profile.first_name,
                profile.last_name,
                profile.username,
                profile.email,
                profile.nickname,
                profile.position,
                chat.header,
            ]
            # usernames are often "last.first"
            + profile.username.split(".")
        ),
        mention_count=unread.mention_count if unread else None,
        presence=_presence(status, now) if status else None,
    )


def _channel_record(channel: Channel, unread: Optional[UnreadMessageCount]) -> ChannelRecord:
    if channel.type == CHANNEL_OPEN:
        kind = KIND_PUBLIC
    elif channel.type == CHANNEL_GROUP:
        kind = KIND_GROUP
    else:
        kind = KIND_PRIVATE
    return ChannelRecord(
        id=channel.id,
        kind=kind,
        title=channel.display_name or channel.name,
        mention_name="@" + channel.name,
        path="/channels/" + channel.name,
        keywords=_keywords([channel.display_name, channel.name, channel.header, channel.purpose]),
        mention_count=unread.mention_count if unread else None,
    )


def _presence(status: UserProfileStatus, now: Optional[datetime]) -> Presence:
    last_seen = None
    if status.status != PresenceKind.ONLINE.value:
        last_seen = describe_last_activity(status.last_activity_at, now)
    return Presence(kind=status.status, last_activity_at=status.last_activity_at, last_seen=last_seen)


def group_by_category(categories: Sequence[ChannelCategory],
                      records: Dict[str, ChannelRecord]) -> List[ChannelGroup]:
    """Lay records out by category, in each category's own order.

    Ids a category lists without a matching record (channels you have left)
    are skipped.
    """
    groups = []
    for category in categories:
        members = tuple(records[cid] for cid in category.channel_ids if cid in records)
        groups.append(ChannelGroup(category.display_name, members))
    return groups


def unread_group(groups: Sequence[ChannelGroup]) -> ChannelGroup:
    seen = set()
    unread: List[ChannelRecord] = []
    for group in groups:
        for record in group.records:
            if record.has_mentions and record.id not in seen:
                seen.add(record.id)
                unread.append(record)
    return ChannelGroup(UNREAD_GROUP_NAME, tuple(unread), virtual=True)


def build_records(own_id: str, channels: Sequence[Channel], unread: Sequence[UnreadMessageCount],
                  profiles: Sequence[UserProfile], statuses: Sequence[UserProfileStatus],
                  now: Optional[datetime] = None) -> Dict[str, ChannelRecord]:
    """Join fetched data into one ChannelRecord per channel, keyed by channel id."""
    unread_by_channel = {u.channel_id: u for u in unread}
    profiles_by_id = {p.id: p for p in profiles}
    statuses_by_user = {s.user_id: s for s in statuses}

    records: Dict[str, ChannelRecord] = {}
    for channel in channels:
        if channel.is_direct:
            peer_id = direct_peer_id(channel.name, own_id)
            profile = profiles_by_id.get(peer_id)
            if profile is None:
                logger.debug("No profile for direct channel %s (peer %s), skipping", channel.id, peer_id)
                continue
            records[channel.id] = _direct_record(
                channel, profile, unread_by_channel.get(channel.id), statuses_by_user.get(peer_id), now
            )
        else:
            records[channel.id] = _channel_record(channel, unread_by_channel.get(channel.id))
    return records


def build_channel_view(client: "MattermostClient", team_id: str, own_id: str,
                       now: Optional[datetime] = None) -> List[ChannelGroup]:
    """Fetch and assemble the channel list for ``team_id``.

    Any failed fetch propagates; nothing partial is returned.
    """
    with ThreadPoolExecutor(max_workers=MAX_FETCH_WORKERS) as pool:
        categories_f = pool.submit(client.get_channel_categories, team_id)
        channels_f = pool.submit(client.get_my_channels, team_id)
        unread_f = pool.submit(client.get_unread_messages, team_id)
        categories = categories_f.result()
        channels = channels_f.result()
        unread = unread_f.result()

        peer_ids = list(dict.fromkeys(
            direct_peer_id(channel.name, own_id) for channel in channels if channel.is_direct
        ))
        profiles: List[UserProfile] = []
        statuses: List[UserProfileStatus] = []
        if peer_ids:
            profiles_f = pool.submit(client.get_profiles_by_ids, peer_ids)
            statuses_f = pool.submit(client.get_profiles_status, peer_ids)
            profiles = profiles_f.result()
            statuses = statuses_f.result()

    logger.debug(
        "Team %s: %d categories, %d channels (%d direct), %d unread entries",
        team_id, len(categories), len(channels), len(peer_ids), len(unread),
    )
    records = build_records(own_id, channels, unread, profiles, statuses, now)
    groups = group_by_category(categories, records)

    unread_only = unread_group(groups)
    if unread_only.records:
        return [unread_only] + groups
    return groups


def load_team_view(client: "MattermostClient", team_name: Optional[str] = None,
                   now: Optional[datetime] = None) -> TeamView:
    """Who am I, which team, and that team's channel list."""
    with ThreadPoolExecutor(max_workers=2) as pool:
        profile_f = pool.submit(client.get_me)
        teams_f = pool.submit(client.get_teams)
        profile = profile_f.result()
        teams = teams_f.result()

    team = select_team(teams, team_name)
    logger.debug("Loading channels of team %s", team.name)
    return TeamView(team, profile, build_channel_view(client, team.id, profile.id, now))


def search_groups(groups: Sequence[ChannelGroup], query: str) -> List[ChannelGroup]:
    """Keep records whose title or keywords contain every word of ``query``."""
    words = query.lower().split()
    if not words:
        return list(groups)

    def matches(record: ChannelRecord) -> bool:
        haystack: Tuple[str, ...] = (record.title.lower(),) + tuple(k.lower() for k in record.keywords)
        return all(any(word in text for text in haystack) for word in words)

    filtered = []
    for group in groups:
        records = tuple(r for r in group.records if matches(r))
        if records:
            filtered.append(ChannelGroup(group.name, records, group.virtual))
    return filtered
