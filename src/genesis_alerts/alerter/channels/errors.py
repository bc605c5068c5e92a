"""Exceptions raised by alert channels."""


class ChannelError(Exception):
    """Raised when a channel fails to deliver an alert."""

    def __init__(self, channel: str, message: str) -> None:
        super().__init__(f"{channel}: {message}")
        self.channel = channel


class ChannelNotConfiguredError(ChannelError):
    """Raised when sending through a channel that is missing its configuration."""

    def __init__(self, channel: str) -> None:
        super().__init__(channel, "channel not configured")
