"""YouTube video lookup used to attach previews to music events."""
import html
import logging
import re
import threading
import time
from dataclasses import replace
from typing import Callable, Dict, Iterable, List, Optional

import requests

from config import VIDEO_VENUES
from processor.models import NormalizedEvent

logger = logging.getLogger(__name__)

SEARCH_URL = 'https://www.googleapis.com/youtube/v3/search'
WATCH_URL = 'https://youtube.com/watch?v={video_id}'
EMBED_URL = 'https://www.youtube.com/embed/{video_id}'
MUSIC_CATEGORY_ID = '10'
MAX_RESULTS = 3
MIN_VIDEO_ID_LENGTH = 5
RATE_LIMIT_REQUESTS = 50
RATE_LIMIT_WINDOW_SECONDS = 60 * 60

# Sources whose every event is music at a video venue
ALWAYS_ENRICHED_SOURCES = {'smokeyjoes'}

_QUERY_NOISE = re.compile(r'\s+(live|concert|tour|at|presents|featuring)\s+.*', re.IGNORECASE)

_TITLE_NOISE = [
    re.compile(r'\s*\(Official.*?\)', re.IGNORECASE),
    re.compile(r'\s*\[Official.*?\]', re.IGNORECASE),
    re.compile(r'\s*-\s*Official.*$', re.IGNORECASE),
    re.compile(r'\s*\|\s*Official.*$', re.IGNORECASE),
    re.compile(r'\s+LIVE\s+AT\s+.*$', re.IGNORECASE),
    re.compile(r'\s+at\s+.*(tavern|bar|venue|club|theater|hall).*$', re.IGNORECASE),
]


class YouTubeError(Exception):
    """Raised when the YouTube API request fails."""

    def __init__(self, message: str, status_code: int = 502, details=None):
        super().__init__(message)
        self.status_code = status_code
        self.details = details


def clean_search_query(query: str) -> str:
    """Drop everything from "live", "tour", "at" and similar words onward."""
    return _QUERY_NOISE.sub('', query or '', count=1).strip()


def clean_video_title(title: Optional[str]) -> str:
    """
    Decode entities and strip marketing noise from a video title.

    Example:
        "Band Name - Song (Official Video)" -> "Band Name - Song"
    """
    cleaned = html.unescape(title or '')
    for pattern in _TITLE_NOISE:
        cleaned = pattern.sub('', cleaned)
    return cleaned.strip()


def extract_video_id(url: Optional[str]) -> Optional[str]:
    """
    Extract a video id from a watch or youtu.be URL.

    Returns:
        The id, or None when the URL has none or it is shorter than 5 chars
    """
    if not url:
        return None

    if 'v=' in url:
        video_id = url.split('v=')[1].split('&')[0]
    elif 'youtu.be/' in url:
        video_id = url.split('youtu.be/')[1].split('?')[0]
    else:
        return None

    return video_id if len(video_id) >= MIN_VIDEO_ID_LENGTH else None


def create_embed_url(video_id: str, autoplay: bool = False) -> str:
    url = EMBED_URL.format(video_id=video_id)
    return f"{url}?autoplay=1" if autoplay else url


def to_video(title: Optional[str], url: str) -> Optional[Dict[str, str]]:
    """
    Build one video result from a raw title and watch URL.

    Returns:
        {title, url, embedUrl} or None when the URL carries no usable id
    """
    video_id = extract_video_id(url)
    if not video_id:
        return None
    return {
        'title': clean_video_title(title),
        'url': url,
        'embedUrl': create_embed_url(video_id),
    }


class VideoCache:
    """
    Thread-safe memo of search results keyed by normalized artist name.

    Entries never expire. A stored empty list counts as a hit.
    """

    def __init__(self):
        self._entries: Dict[str, List[Dict[str, str]]] = {}
        self._lock = threading.Lock()

    @staticmethod
    def key(artist_name: str) -> str:
        return (artist_name or '').lower().strip()

    def get(self, artist_name: str) -> Optional[List[Dict[str, str]]]:
        with self._lock:
            videos = self._entries.get(self.key(artist_name))
        return list(videos) if videos is not None else None

    def set(self, artist_name: str, videos: List[Dict[str, str]]) -> None:
        with self._lock:
            self._entries[self.key(artist_name)] = list(videos)

    def __contains__(self, artist_name: str) -> bool:
        with self._lock:
            return self.key(artist_name) in self._entries

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)


class RateLimiter:
    """
    Sliding-window request counter keyed by client address.

    Args:
        max_requests: Requests allowed per client inside one window
        window_seconds: Window length in seconds
        clock: Monotonic time source
    """

    def __init__(self, max_requests: int = RATE_LIMIT_REQUESTS, window_seconds: float = RATE_LIMIT_WINDOW_SECONDS,
                 clock: Callable[[], float] = time.monotonic):
        self.max_requests = max_requests
        self.window_seconds = window_seconds
        self._clock = clock
        self._requests: Dict[str, List[float]] = {}
        self._lock = threading.Lock()

    def allow(self, client: str) -> bool:
        """Record a request and report whether it fits in the window."""
        now = self._clock()
        with self._lock:
            recent = [t for t in self._requests.get(client, []) if now - t < self.window_seconds]
            if len(recent) >= self.max_requests:
                self._requests[client] = recent
                return False
            recent.append(now)
            self._requests[client] = recent
            return True


class YouTubeClient:
    """Client for the YouTube Data API search endpoint."""

    def __init__(self, api_key: str, timeout: int = 30, cache: Optional[VideoCache] = None,
                 session: Optional[requests.Session] = None):
        """
        Initialize the client.

        Args:
            api_key: YouTube Data API key
            timeout: HTTP request timeout in seconds (default: 30)
            cache: Shared result cache (a new one is created when omitted)
            session: Optional requests session to reuse
        """
        self.api_key = api_key
        self.timeout = timeout
        self.cache = cache if cache is not None else VideoCache()
        self.session = session or requests.Session()

    def search(self, query: str) -> List[Dict[str, str]]:
        """
        Search music videos, uncached.

        Args:
            query: Artist or event name

        Returns:
            Up to three {title, url, embedUrl} dicts

        Raises:
            YouTubeError: On transport failure or a non-2xx response
        """
        search_query = clean_search_query(query)
        params = {
            'part': 'snippet',
            'q': search_query,
            'type': 'video',
            'videoCategoryId': MUSIC_CATEGORY_ID,
            'maxResults': MAX_RESULTS,
            'key': self.api_key,
        }
        logger.debug(f"YouTube search for '{search_query}'")

        try:
            response = self.session.get(SEARCH_URL, params=params, timeout=self.timeout)
        except requests.RequestException as e:
            raise YouTubeError('Failed to fetch YouTube videos', details=str(e)) from e

        if not response.ok:
            try:
                payload = response.json()
            except ValueError:
                payload = {'body': response.text}
            error = payload.get('error') if isinstance(payload, dict) else None
            message = error.get('message') if isinstance(error, dict) else None
            raise YouTubeError(
                message or 'Failed to fetch YouTube videos',
                status_code=response.status_code,
                details=payload
            )

        try:
            items = response.json().get('items') or []
        except ValueError as e:
            raise YouTubeError('Invalid YouTube response', details=str(e)) from e

        videos = []
        for item in items:
            video = to_video(
                (item.get('snippet') or {}).get('title'),
                WATCH_URL.format(video_id=(item.get('id') or {}).get('videoId') or '')
            )
            if video:
                videos.append(video)
        return videos

    def search_videos(self, artist_name: str) -> List[Dict[str, str]]:
        """
        Cached search that never raises.

        Failures are logged and cached as an empty list so the same artist
        is not requested again.
        """
        cached = self.cache.get(artist_name)
        if cached is not None:
            logger.debug(f"Using cached YouTube results for {artist_name}")
            return cached

        try:
            videos = self.search(artist_name)
        except YouTubeError as e:
            logger.warning(
                f"YouTube lookup failed for {artist_name}: {e}",
                extra={'details': e.details}
            )
            videos = []

        self.cache.set(artist_name, videos)
        return videos


def wants_videos(event: NormalizedEvent, venues: Iterable[str] = VIDEO_VENUES) -> bool:
    """Music events at a video venue, plus every event of an always-enriched source."""
    if event.source in ALWAYS_ENRICHED_SOURCES:
        return True
    is_music = any('music' in genre.lower() for genre in event.genres or [])
    venue = (event.venue or '').lower()
    return is_music and any(v in venue for v in venues)


def enrich_events(events: Iterable[NormalizedEvent], client: YouTubeClient,
                  venues: Iterable[str] = VIDEO_VENUES) -> List[NormalizedEvent]:
    """
    Attach YouTube links to eligible events.

    Args:
        events: Events to enrich
        client: YouTube client with its cache
        venues: Venue-name keywords that get previews

    Returns:
        New list; eligible events are copies with youtube_links set
    """
    venues = list(venues)
    enriched = []
    for event in events:
        if not wants_videos(event, venues):
            enriched.append(event)
            continue
        videos = client.search_videos(event.name)
        enriched.append(replace(event, youtube_links=videos) if videos else event)
    return enriched
