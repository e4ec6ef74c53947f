"""State shared by an interactive live client between turns.

Holds the clips of the most recent live reply and two hotkey actions
(replay speech, search clips).  Each trigger is guarded by a busy flag: a
second trigger while the first is still running is dropped, not queued.
"""

from __future__ import annotations

import logging
from typing import Awaitable, Callable, Optional

from storycast.handlers.live import Clip

logger = logging.getLogger("storycast.client_state")

HotkeyAction = Callable[[], Awaitable[None]]


class LiveClientState:
    def __init__(self) -> None:
        self._speech_clips: list[str] = []
        self._live_clips: list[Clip] = []
        self._speech_action: Optional[HotkeyAction] = None
        self._clip_search_action: Optional[HotkeyAction] = None
        self._speech_running = False
        self._clip_search_running = False

    # --- last reply --------------------------------------------------------

    @property
    def last_speech_clips(self) -> list[str]:
        return list(self._speech_clips)

    @property
    def last_live_clips(self) -> list[Clip]:
        return list(self._live_clips)

    def set_last_live_clips(self, clips: list[Clip]) -> None:
        self._live_clips = list(clips)
        self._speech_clips = [clip.speech for clip in clips if clip.speech.strip()]

    def clear(self) -> None:
        self._live_clips = []
        self._speech_clips = []

    # --- hotkeys -----------------------------------------------------------

    def set_speech_action(self, action: Optional[HotkeyAction]) -> None:
        self._speech_action = action

    def set_clip_search_action(self, action: Optional[HotkeyAction]) -> None:
        self._clip_search_action = action

    async def trigger_speech(self) -> bool:
        """Run the speech action. Returns False if it was not run."""
        if self._speech_action is None:
            logger.info("No VTuber speech is available yet.")
            return False
        if self._speech_running:
            return False

        self._speech_running = True
        try:
            await self._speech_action()
        except Exception as exc:
            logger.error("Failed to generate speech: %s", exc)
        finally:
            self._speech_running = False
        return True

    async def trigger_clip_search(self) -> bool:
        """Run the clip search action. Returns False if it was not run."""
        if self._clip_search_action is None:
            logger.info("No clip search handler is available.")
            return False
        if self._clip_search_running:
            return False

        self._clip_search_running = True
        try:
            await self._clip_search_action()
        except Exception as exc:
            logger.error("Failed to search clips: %s", exc)
        finally:
            self._clip_search_running = False
        return True
