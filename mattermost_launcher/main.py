import argparse
import sys
from typing import List, Optional

from rich.text import Text
from textual import work
from textual.app import App, ComposeResult
from textual.binding import Binding
from textual.widgets import Footer, Header, Input, Label, ListItem, ListView

from .api_interface import MattermostClient
from .channels import TeamSelectionError, TeamView, load_team_view, search_groups
from .config import ConfigError, load_config
from .data_models import ChannelGroup, ChannelRecord
from .errors import ApiError
from .links import open_channel
from .log import get_logger, set_debug
from .presence import CurrentPresence, PresenceKind, current_presence, set_presence

logger = get_logger("main")


def channel_label(record: ChannelRecord) -> Text:
    text = Text(record.title, style="bold")
    if record.subtitle:
        text.append(f"  {record.subtitle}", style="dim")
    if record.has_mentions:
        text.append(f"  {record.mention_count} unread", style="black on yellow")
    if record.presence is not None:
        text.append(f"  {record.presence.kind}", style="green" if record.presence.kind == "online" else "dim")
        if record.presence.last_seen:
            text.append(f" {record.presence.last_seen}", style="dim")
    return text


class SectionHeader(ListItem):
    def __init__(self, group: ChannelGroup):
        super().__init__(Label(Text(f"{group.name} ({group.count_label})", style="bold underline")), disabled=True)


class ChannelItem(ListItem):
    def __init__(self, record: ChannelRecord):
        super().__init__(Label(channel_label(record)))
        self.record = record


class LauncherApp(App):
    """Search your channels and open one in the Mattermost app."""

    TITLE = "Mattermost channels"
    BINDINGS = [
        Binding("escape", "quit", "Quit"),
        Binding("ctrl+r", "reload", "Reload"),
    ]

    def __init__(self, client: MattermostClient, team_name: Optional[str] = None):
        super().__init__()
        self.client = client
        self.team_name = team_name
        self.team_view: Optional[TeamView] = None

    def compose(self) -> ComposeResult:
        yield Header()
        yield Input(placeholder="Search channel or user", id="search")
        yield ListView(id="channels")
        yield Footer()

    def on_mount(self) -> None:
        self.action_reload()

    def action_reload(self) -> None:
        self.notify("Fetching channels...")
        self.load_channels()

    @work(thread=True, exclusive=True)
    def load_channels(self) -> None:
        try:
            self.client.sessions.ensure_session()
            view = load_team_view(self.client, self.team_name)
        except (ApiError, TeamSelectionError) as e:
            logger.exception("Loading channels failed")
            self.call_from_thread(self.notify, f"Failed: {e}", severity="error", timeout=10)
            return
        self.call_from_thread(self._loaded, view)

    async def _loaded(self, view: TeamView) -> None:
        self.team_view = view
        self.sub_title = view.team.display_name or view.team.name
        await self._render_groups(view.groups)

    async def _render_groups(self, groups: List[ChannelGroup]) -> None:
        list_view = self.query_one("#channels", ListView)
        await list_view.clear()
        items: List[ListItem] = []
        for group in groups:
            items.append(SectionHeader(group))
            items.extend(ChannelItem(record) for record in group.records)
        await list_view.extend(items)

    async def on_input_changed(self, event: Input.Changed) -> None:
        if self.team_view is not None:
            await self._render_groups(search_groups(self.team_view.groups, event.value))

    def on_input_submitted(self, event: Input.Submitted) -> None:
        self.query_one("#channels", ListView).focus()

    def on_list_view_selected(self, event: ListView.Selected) -> None:
        if not isinstance(event.item, ChannelItem) or self.team_view is None:
            return
        base_url = self.client.sessions.config.base_url
        open_channel(base_url, self.team_view.team.name, event.item.record)
        self.exit()


class StatusItem(ListItem):
    def __init__(self, kind: PresenceKind, current: bool = False):
        label = Text(kind.label, style="bold" if current else "")
        if current:
            label.append("  (current)", style="dim")
        super().__init__(Label(label), disabled=current)
        self.kind = kind


class StatusApp(App):
    """Pick a new presence status."""

    TITLE = "Mattermost status"
    BINDINGS = [Binding("escape", "quit", "Quit")]

    def __init__(self, client: MattermostClient):
        super().__init__()
        self.client = client
        self.presence: Optional[CurrentPresence] = None

    def compose(self) -> ComposeResult:
        yield Header()
        yield ListView(id="statuses")
        yield Footer()

    def on_mount(self) -> None:
        self.load_status()

    @work(thread=True, exclusive=True)
    def load_status(self) -> None:
        try:
            self.client.sessions.ensure_session()
            presence = current_presence(self.client)
        except ApiError as e:
            logger.exception("Loading status failed")
            self.call_from_thread(self.notify, f"Failed: {e}", severity="error", timeout=10)
            return
        self.call_from_thread(self._show, presence)

    async def _show(self, presence: CurrentPresence) -> None:
        self.presence = presence
        list_view = self.query_one("#statuses", ListView)
        await list_view.clear()
        await list_view.extend(
            [StatusItem(presence.current, current=True)] + [StatusItem(kind) for kind in presence.available]
        )

    def on_list_view_selected(self, event: ListView.Selected) -> None:
        if isinstance(event.item, StatusItem) and self.presence is not None:
            self.notify("Setting status...")
            self.change_status(event.item.kind)

    @work(thread=True, exclusive=True)
    def change_status(self, kind: PresenceKind) -> None:
        try:
            presence = set_presence(self.client, self.presence.user_id, kind)
        except ApiError as e:
            logger.exception("Setting status failed")
            self.call_from_thread(self.notify, f"Fail {e}", severity="error")
            return
        self.call_from_thread(self._show, presence)
        self.call_from_thread(self.notify, f"Status set to {kind.label}")


def main(argv: Optional[List[str]] = None) -> int:
    parser = argparse.ArgumentParser(prog="mattermost-launcher", description="Browse Mattermost channels or change your status.")
    parser.add_argument(
        "command",
        nargs="?",
        default="channels",
        choices=["channels", "status", "sign-out"],
        help="what to do (default: channels)",
    )
    args = parser.parse_args(argv)

    try:
        config = load_config()
    except ConfigError as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        return 2
    set_debug(config.debug)

    client = MattermostClient.from_config(config)
    if args.command == "sign-out":
        try:
            client.sessions.sign_out()
        except ApiError as e:
            print(f"Sign-out failed: {e}", file=sys.stderr)
            return 1
        print("Stored session token removed.")
        return 0

    logger.debug("starting %s", args.command)
    if args.command == "status":
        StatusApp(client).run()
    else:
        LauncherApp(client, config.team_name).run()
    return 0


if __name__ == "__main__":
    sys.exit(main())
