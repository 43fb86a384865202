"""Single "now playing" slot shared by every video player."""
import logging
import threading
from typing import Callable, List, Optional

logger = logging.getLogger(__name__)

Listener = Callable[[Optional[str]], None]


class PlaybackController:
    """
    Tracks which video is playing so that starting one stops the others.

    Subscribers are called with the new playing id (or None) after every
    change.
    """

    def __init__(self):
        self._playing: Optional[str] = None
        self._listeners: List[Listener] = []
        self._lock = threading.Lock()

    @property
    def playing(self) -> Optional[str]:
        return self._playing

    def is_playing(self, video_id: str) -> bool:
        return self._playing == video_id

    def play(self, video_id: str) -> None:
        with self._lock:
            self._playing = video_id
        self._notify(video_id)

    def stop(self, video_id: Optional[str] = None) -> None:
        """Stop playback; with an id, only if that video is the one playing."""
        with self._lock:
            if video_id is not None and self._playing != video_id:
                return
            self._playing = None
        self._notify(None)

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """
        Register a change listener.

        Returns:
            Function that removes the listener; calling it twice is harmless
        """
        with self._lock:
            self._listeners.append(listener)

        def unsubscribe() -> None:
            with self._lock:
                if listener in self._listeners:
                    self._listeners.remove(listener)

        return unsubscribe

    def _notify(self, video_id: Optional[str]) -> None:
        with self._lock:
            listeners = list(self._listeners)
        for listener in listeners:
            try:
                listener(video_id)
            except Exception as e:
                logger.warning(f"Playback listener failed: {e}")
                continue
