"""
Vision Buddy Console Adapters

Stand-ins for the camera and microphone in a terminal session: frames
come from an image file and typed lines play the part of recognized
speech.
"""

from __future__ import annotations

import asyncio
import logging
import sys
import threading
from pathlib import Path
from typing import Optional

from visionbuddy.exceptions import FrameCaptureError, SpeechError
from visionbuddy.types import EndHandler, ResultHandler

logger = logging.getLogger("visionbuddy.console")


__all__ = ["ImageFileFrameSource", "TypedSpeechRecognizer", "StdinReader"]


class ImageFileFrameSource:
    """FrameSource that reads the same JPEG file on every capture."""

    def __init__(self, path: Optional[str | Path] = None):
        self.path = Path(path) if path else None

    async def capture(self) -> bytes:
        if self.path is None:
            raise FrameCaptureError("No camera image configured (use --image)")
        try:
            return await asyncio.to_thread(self.path.read_bytes)
        except OSError as e:
            raise FrameCaptureError(f"Cannot read camera image {self.path}: {e}") from e


class TypedSpeechRecognizer:
    """
    SpeechRecognizer fed by typed text.

    start() opens a listening window; deliver() hands a line to the
    result handler and then closes the window like a real recognizer
    does after one phrase.
    """

    def __init__(self):
        self.locale_tag = "en-US"
        self._on_result: Optional[ResultHandler] = None
        self._on_end: Optional[EndHandler] = None
        self._listening = False

    @property
    def is_listening(self) -> bool:
        return self._listening

    def configure(self, locale_tag: str, on_result: ResultHandler, on_end: EndHandler) -> None:
        self.locale_tag = locale_tag
        self._on_result = on_result
        self._on_end = on_end

    def start(self) -> None:
        if self._on_result is None:
            raise SpeechError("Recognizer started before configure()", backend="console")
        self._listening = True

    def stop(self) -> None:
        self._listening = False

    async def deliver(self, text: str) -> None:
        """Feed one recognized phrase."""
        if not self._listening:
            logger.debug(f"Recognizer not listening, dropping {text!r}")
            return
        self._listening = False
        if self._on_result is not None:
            await self._on_result(text)
        if self._on_end is not None:
            await self._on_end()


class StdinReader:
    """
    Reads stdin lines on a daemon thread into an asyncio queue.

    A daemon thread never keeps the process alive at exit, unlike a
    blocking input() in the default executor.
    """

    def __init__(self, loop: asyncio.AbstractEventLoop):
        self._loop = loop
        self.lines: asyncio.Queue[Optional[str]] = asyncio.Queue()
        self._thread = threading.Thread(target=self._run, name="stdin-reader", daemon=True)

    def start(self) -> None:
        self._thread.start()

    def _run(self) -> None:
        for line in sys.stdin:
            self._loop.call_soon_threadsafe(self.lines.put_nowait, line.rstrip("\n"))
        # EOF
        self._loop.call_soon_threadsafe(self.lines.put_nowait, None)
