"""
SpeechCoordinator - At most one audio clip loading or playing at a time.

Synthesis runs on an executor so navigation never waits for it. Starting a
new clip, or any navigation transition, cancels the previous one; a late
synthesis result for a cancelled clip is dropped.
"""

import functools
import itertools
import logging
import threading
from concurrent.futures import Executor, Future, ThreadPoolExecutor
from enum import Enum
from typing import Callable, Optional

from shekho.errors import SynthesisFailed

from .synthesis import SpeechPayload


logger = logging.getLogger(__name__)

Synthesize = Callable[[SpeechPayload], bytes]


class PlaybackState(str, Enum):
    LOADING = "loading"
    PLAYING = "playing"
    FINISHED = "finished"
    FAILED = "failed"
    CANCELLED = "cancelled"


class AudioHandle:
    """One speak() request and, once synthesized, its audio."""

    def __init__(self, handle_id: int, payload: SpeechPayload):
        self.id = handle_id
        self.payload = payload
        self.state = PlaybackState.LOADING
        self.audio: Optional[bytes] = None
        self.error: Optional[SynthesisFailed] = None
        self._future: Optional[Future] = None
        self._settled = threading.Event()

    @property
    def active(self) -> bool:
        return self.state in (PlaybackState.LOADING, PlaybackState.PLAYING)

    def wait(self, timeout: Optional[float] = None) -> bool:
        """Block until the handle leaves LOADING. Returns False on timeout."""
        return self._settled.wait(timeout)

    def __repr__(self) -> str:
        return f"AudioHandle(id={self.id}, state={self.state.value})"


class AudioPlayer:
    """Output side of the coordinator."""

    def play(self, handle: AudioHandle):
        raise NotImplementedError

    def stop(self, handle: AudioHandle):
        raise NotImplementedError


class BufferedPlayer(AudioPlayer):
    """
    Keeps the clip that should be audible for the front end to render.

    The front end calls SpeechCoordinator.finished() once it has handed
    the clip to the browser.
    """

    def __init__(self):
        self.now_playing: Optional[AudioHandle] = None

    def play(self, handle: AudioHandle):
        self.now_playing = handle

    def stop(self, handle: AudioHandle):
        if self.now_playing is handle:
            self.now_playing = None

    def take(self) -> Optional[AudioHandle]:
        """Return the clip to render and forget it."""
        handle, self.now_playing = self.now_playing, None
        return handle


class SpeechCoordinator:
    """
    Mediates speak requests to a synthesizer.

    `busy` is True while the active clip is loading or playing; the
    flashcard sessions use it to disable playback controls.
    """

    def __init__(
        self,
        synthesize: Synthesize,
        player: Optional[AudioPlayer] = None,
        executor: Optional[Executor] = None,
    ):
        self._synthesize = synthesize
        self.player = player or BufferedPlayer()
        self._executor = executor or ThreadPoolExecutor(max_workers=2, thread_name_prefix="shekho-tts")
        self._lock = threading.RLock()
        self._current: Optional[AudioHandle] = None
        self._ids = itertools.count(1)
        self.last_error: Optional[SynthesisFailed] = None

    @property
    def current(self) -> Optional[AudioHandle]:
        return self._current

    @property
    def busy(self) -> bool:
        with self._lock:
            return self._current is not None and self._current.active

    def speak(self, payload: SpeechPayload) -> AudioHandle:
        """Stop whatever is active and start synthesizing `payload`."""
        with self._lock:
            self._stop_current()
            handle = AudioHandle(next(self._ids), payload)
            self._current = handle
            self.last_error = None

        future = self._executor.submit(self._synthesize, payload)
        handle._future = future
        future.add_done_callback(functools.partial(self._on_synthesized, handle))
        return handle

    def stop(self):
        """Cancel the active clip, if any."""
        with self._lock:
            self._stop_current()

    def finished(self, handle: AudioHandle):
        """Called by the player when a clip has played to the end."""
        with self._lock:
            if handle is self._current and handle.state == PlaybackState.PLAYING:
                handle.state = PlaybackState.FINISHED
                self._current = None

    def shutdown(self):
        self.stop()
        self._executor.shutdown(wait=False)

    def _stop_current(self):
        handle = self._current
        if handle is None:
            return
        if handle.state == PlaybackState.LOADING:
            if handle._future is not None:
                handle._future.cancel()
            handle.state = PlaybackState.CANCELLED
            handle._settled.set()
            logger.debug(f"Cancelled loading clip {handle.id}")
        elif handle.state == PlaybackState.PLAYING:
            self.player.stop(handle)
            handle.state = PlaybackState.CANCELLED
            logger.debug(f"Stopped playing clip {handle.id}")
        self._current = None

    def _on_synthesized(self, handle: AudioHandle, future: Future):
        with self._lock:
            if future.cancelled() or handle is not self._current or handle.state != PlaybackState.LOADING:
                logger.debug(f"Discarding result for superseded clip {handle.id}")
                return

            error = future.exception()
            if error is not None:
                if not isinstance(error, SynthesisFailed):
                    error = SynthesisFailed(str(error) or "Failed to generate speech")
                handle.error = error
                handle.state = PlaybackState.FAILED
                self._current = None
                self.last_error = error
                logger.warning(f"Speech synthesis failed: {error}")
            else:
                handle.audio = future.result()
                handle.state = PlaybackState.PLAYING
                self.player.play(handle)
            handle._settled.set()
