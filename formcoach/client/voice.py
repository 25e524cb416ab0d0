# client/voice.py

import logging
import queue
from threading import Thread
from typing import Callable, Optional

import pyttsx3

from .events import CoachEvent, EventType

logger = logging.getLogger(__name__)

SPEECH_RATE = 165
MAX_QUEUED_MESSAGES = 3


def event_to_text(event: CoachEvent) -> Optional[str]:
    """Spoken line for a coaching event, or None if it stays silent."""
    if event.type == EventType.COUNT_ANNOUNCED:
        return str(event.value)
    if event.type == EventType.ALMOST_THERE:
        return "Almost there, keep going!"
    if event.type == EventType.GOAL_COMPLETE:
        return "Target reached. Great work!"
    if event.type == EventType.TARGET_SET:
        return f"Target set to {event.value} reps"
    if event.type == EventType.MODE_CHANGED:
        return "Auto detect mode" if event.detail == "auto" else f"{event.detail} mode"
    if event.type == EventType.EXERCISE_DETECTED:
        return f"{event.detail} detected"
    if event.type == EventType.COUNTER_RESET:
        return "Count reset"
    return None


class VoiceManager:
    """
    Speaks coaching events on a background thread so the frame loop never
    blocks on audio.

    Normal messages queue up (at most 3, extras are dropped). Priority
    messages flush whatever is still waiting and go next.
    """

    def __init__(self, engine_factory: Callable = pyttsx3.init, rate: int = SPEECH_RATE):
        self.engine_factory = engine_factory
        self.rate = rate
        self.enabled = True
        self._queue: "queue.Queue[str]" = queue.Queue(maxsize=MAX_QUEUED_MESSAGES)
        self._worker: Optional[Thread] = None
        self._current_engine = None

    def start(self):
        if self._worker is None:
            self._worker = Thread(target=self._run, daemon=True)
            self._worker.start()

    def handle_event(self, event: CoachEvent):
        text = event_to_text(event)
        if text:
            self.speak(text, priority=event.priority)

    def speak(self, text: str, priority: bool = False):
        if not self.enabled or not text:
            return

        if priority:
            self.clear_queue()
        try:
            self._queue.put_nowait(text)
        except queue.Full:
            logger.debug("Voice queue full, dropping %r", text)

    def speak_number(self, num: int):
        self.speak(str(num))

    def pending(self):
        return list(self._queue.queue)

    def clear_queue(self):
        while True:
            try:
                self._queue.get_nowait()
            except queue.Empty:
                return
            self._queue.task_done()

    def stop(self):
        """Drops queued lines and cuts off the one being spoken."""
        self.clear_queue()
        engine = self._current_engine
        if engine is not None:
            try:
                engine.stop()
            except Exception:
                logger.exception("TTS error while stopping speech")

    def toggle(self) -> bool:
        self.enabled = not self.enabled
        if not self.enabled:
            self.stop()
        return self.enabled

    def _run(self):
        while True:
            text = self._queue.get()
            try:
                self._say(text)
            finally:
                self._queue.task_done()

    def _say(self, text: str):
        """
        Create a fresh engine for THIS message only; pyttsx3 engines do not
        survive being reused across threads.
        """
        try:
            engine = self.engine_factory()
            self._current_engine = engine
            engine.setProperty("rate", self.rate)
            engine.say(text)
            engine.runAndWait()
            engine.stop()
        except Exception:
            logger.exception("TTS error while speaking %r", text)
        finally:
            self._current_engine = None
