"""Shared logging for mattermost_launcher.

Everything logs under the ``mattermost_launcher`` logger, at WARNING until
``set_debug`` turns on debug output. With MATTERMOST_LAUNCHER_DEBUG=1 the
entry point does that, and debug output goes to stderr and to
~/.mattermost_launcher_debug.log (textual captures stderr while the UI runs,
so the file is the place to look).
"""
import logging
import sys
from pathlib import Path
from typing import Optional

DEBUG_LOG_FILE = Path.home() / ".mattermost_launcher_debug.log"

_root = logging.getLogger("mattermost_launcher")
_stream: Optional[logging.Handler] = None
_file: Optional[logging.Handler] = None


def _configure() -> None:
    global _stream
    if _stream is not None:
        return
    _root.setLevel(logging.WARNING)
    _stream = logging.StreamHandler(sys.stderr)
    _stream.setLevel(logging.WARNING)
    _stream.setFormatter(logging.Formatter("[%(name)s] %(levelname)s: %(message)s"))
    _root.addHandler(_stream)
    # don't propagate to the root logger, textual and pytest install their own
    _root.propagate = False


def set_debug(enabled: bool) -> None:
    """Switch debug output (stderr plus the debug log file) on or off."""
    global _file
    _configure()
    level = logging.DEBUG if enabled else logging.WARNING
    _root.setLevel(level)
    _stream.setLevel(level)

    if not enabled:
        if _file is not None:
            _root.removeHandler(_file)
            _file.close()
            _file = None
        return

    if _file is None:
        try:
            _file = logging.FileHandler(DEBUG_LOG_FILE, encoding="utf-8")
        except OSError:
            _root.warning("could not open debug log file %s", DEBUG_LOG_FILE)
            return
        _file.setLevel(logging.DEBUG)
        _file.setFormatter(logging.Formatter("%(asctime)s %(levelname)s %(name)s: %(message)s"))
        _root.addHandler(_file)


def get_logger(name: str) -> logging.Logger:
    _configure()
    return _root.getChild(name)


def mask_token(token: Optional[str]) -> str:
    """Render a bearer token for log output without leaking it."""
    if not token:
        return "<none>"
    return "..." + token[-4:]
