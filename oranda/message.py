"""User-facing status messages.

Messages are printed with click's styling. They are also logged to the
``oranda`` logger, which only has a NullHandler unless an application
attaches its own.
"""

from __future__ import annotations

import enum
import logging

import click

logger = logging.getLogger("oranda")
logger.addHandler(logging.NullHandler())

_verbose = False


class MessageType(enum.Enum):
    INFO = "info"
    SUCCESS = "success"
    WARNING = "warning"
    ERROR = "error"
    DEBUG = "debug"


_STYLES = {
    MessageType.INFO: ("blue", "→"),
    MessageType.SUCCESS: ("green", "✓"),
    MessageType.WARNING: ("yellow", "!"),
    MessageType.ERROR: ("red", "✗"),
    MessageType.DEBUG: ("magenta", "…"),
}

_LOG_LEVELS = {
    MessageType.INFO: logging.INFO,
    MessageType.SUCCESS: logging.INFO,
    MessageType.WARNING: logging.WARNING,
    MessageType.ERROR: logging.ERROR,
    MessageType.DEBUG: logging.DEBUG,
}


def set_verbose(enabled: bool) -> None:
    """Enable or disable printing of debug messages."""
    global _verbose
    _verbose = enabled


def is_verbose() -> bool:
    return _verbose


class Message:
    """A single styled line of output.

    Attributes:
        kind: Type of message, decides color and output stream.
        text: Message body.
    """

    def __init__(self, kind: MessageType, text: str):
        self.kind = kind
        self.text = text

    def format(self) -> str:
        color, marker = _STYLES[self.kind]
        return f"{click.style(marker, fg=color, bold=True)} {click.style(self.text, fg=color)}"

    def print(self) -> None:
        logger.log(_LOG_LEVELS[self.kind], self.text)
        if self.kind is MessageType.DEBUG and not _verbose:
            return
        err = self.kind in (MessageType.WARNING, MessageType.ERROR)
        click.echo(self.format(), err=err)


def info(text: str) -> None:
    Message(MessageType.INFO, text).print()


def success(text: str) -> None:
    Message(MessageType.SUCCESS, text).print()


def warning(text: str) -> None:
    Message(MessageType.WARNING, text).print()


def error(text: str) -> None:
    Message(MessageType.ERROR, text).print()


def debug(text: str) -> None:
    Message(MessageType.DEBUG, text).print()
