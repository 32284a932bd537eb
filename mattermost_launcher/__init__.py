"""Browse Mattermost channels, jump to them and change your presence."""

__version__ = "0.1.0"
