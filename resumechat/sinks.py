"""UI sink interface consumed by the orchestrator."""

import sys
from typing import Protocol, TextIO

from .config import config

logger = config.get_logger(__name__)


class MessageHandle(Protocol):
    """A chat message that keeps growing while an answer streams in."""

    def append(self, text: str) -> None: ...

    def finalize(self, text: str) -> None: ...


class UISink(Protocol):
    """Everything the orchestrator tells the user interface."""

    def on_status(self, text: str) -> None: ...

    def on_message(
        self, sender: str, text: str, *, streaming: bool = False
    ) -> MessageHandle | None: ...

    def on_progress(self, percent: int) -> None: ...

    def set_input_enabled(self, enabled: bool) -> None: ...  # noqa: FBT001


class LoggingMessageHandle:
    """Message handle that accumulates text and logs the final version."""

    def __init__(self, sender: str, text: str) -> None:
        self.sender = sender
        self.text = text

    def append(self, text: str) -> None:
        self.text += text

    def finalize(self, text: str) -> None:
        self.text = text
        logger.info("%s: %s", self.sender, text)


class LoggingSink:
    """Default sink for headless use: routes every UI update to the logger."""

    def on_status(self, text: str) -> None:
        logger.info("Status: %s", text)

    def on_message(
        self, sender: str, text: str, *, streaming: bool = False
    ) -> MessageHandle | None:
        if streaming:
            return LoggingMessageHandle(sender, text)
        logger.info("%s: %s", sender, text)
        return None

    def on_progress(self, percent: int) -> None:
        logger.debug("Progress: %d%%", percent)

    def set_input_enabled(self, enabled: bool) -> None:  # noqa: FBT001
        logger.debug("Input %s", "enabled" if enabled else "disabled")


class ConsoleMessageHandle:
    """Echoes a streamed answer to a terminal as fragments arrive."""

    def __init__(self, stream: TextIO, sender: str, text: str) -> None:
        self.stream = stream
        self.text = text
        self.stream.write(f"{sender}: {text}")
        self.stream.flush()

    def append(self, text: str) -> None:
        self.text += text
        self.stream.write(text)
        self.stream.flush()

    def finalize(self, text: str) -> None:
        # The final answer can differ from the raw stream (fallbacks, failures).
        if text != self.text:
            self.stream.write(f"\n{text}")
        self.stream.write("\n")
        self.stream.flush()
        self.text = text


class ConsoleSink:
    """Sink for the terminal chat, writing to ``stream`` (stdout by default)."""

    def __init__(self, stream: TextIO | None = None) -> None:
        self.stream = stream or sys.stdout
        self.input_enabled = False
        self._last_progress: int | None = None

    def on_status(self, text: str) -> None:
        self.stream.write(f"[{text}]\n")
        self.stream.flush()

    def on_message(
        self, sender: str, text: str, *, streaming: bool = False
    ) -> MessageHandle | None:
        if streaming:
            return ConsoleMessageHandle(self.stream, sender, text)
        self.stream.write(f"{sender}: {text}\n")
        self.stream.flush()
        return None

    def on_progress(self, percent: int) -> None:
        if percent == self._last_progress:
            return
        self._last_progress = percent
        self.stream.write(f"\rEmbedding resume: {percent:3d}%")
        if percent >= 100:
            self.stream.write("\n")
        self.stream.flush()

    def set_input_enabled(self, enabled: bool) -> None:  # noqa: FBT001
        self.input_enabled = enabled
