"""Deep links into the Mattermost desktop app."""
import webbrowser
from urllib.parse import urlsplit

from .data_models import ChannelRecord
from .log import get_logger

logger = get_logger("links")

DEEPLINK_SCHEME = "mattermost"


def channel_deeplink(base_url: str, team_name: str, record: ChannelRecord) -> str:
    """``https://chat.example.com`` + team + record -> ``mattermost://chat.example.com/team/channels/x``."""
    parts = urlsplit(base_url.rstrip("/"))
    server = parts.netloc + parts.path
    return f"{DEEPLINK_SCHEME}://{server}/{team_name}{record.path}"


def open_channel(base_url: str, team_name: str, record: ChannelRecord) -> str:
    link = channel_deeplink(base_url, team_name, record)
    logger.debug("open deeplink %s", link)
    if not webbrowser.open(link):
        logger.warning("No handler accepted %s; is the Mattermost app installed?", link)
    return link
