"""Configuration for the CLT.show event aggregation service."""
import os
from dataclasses import dataclass, field
from typing import Dict, List, Optional


# Venue-name keywords that earn a score bonus and the "divebars" category
PREFERRED_VENUES = ['smokey', 'snug', 'neighborhood']

# Genre names dropped from the filter tray (substring match)
TRAY_EXCLUDED_GENRES = ['undefined', 'other', 'miscellaneous']

# Events whose every genre is in this list are dropped (exact match)
EXCLUDED_GENRES = ['undefined', 'miscellaneous', 'family', 'hockey']

# Keyword exclusion rules; "all" applies to every source
KEYWORD_EXCLUSIONS = [
    {'keyword': 'wrestling', 'source': 'ticketmaster'},
    {'keyword': 'monster jam', 'source': 'ticketmaster'},
    {'keyword': 'parking', 'source': 'ticketmaster'},
    {'keyword': 'sponsored', 'source': 'clttoday'},
    {'keyword': 'gift card', 'source': 'all'},
]

FOOD_KEYWORDS = ['food', 'wine', 'beer']

# Venues whose music events get video previews
VIDEO_VENUES = ['neighborhood theater', 'visulite', 'smokey joe', 'knight theater']

TEXT_SUBSTITUTIONS = [
    {'pattern': 'cltfc', 'replacement': 'Charlotte FC'},
    {'pattern': 'CLT FC', 'replacement': 'Charlotte FC'},
]


def _split_env_list(value: Optional[str], default: List[str]) -> List[str]:
    if not value:
        return list(default)
    return [item.strip().lower() for item in value.split(',') if item.strip()]


@dataclass
class Settings:
    """Runtime settings read from the environment."""
    log_level: str = 'INFO'
    timeout_seconds: int = 30
    max_workers: int = 8
    ticketmaster_api_key: Optional[str] = None
    youtube_api_key: Optional[str] = None
    preferred_venues: List[str] = field(default_factory=lambda: list(PREFERRED_VENUES))
    excluded_genres: List[str] = field(default_factory=lambda: list(EXCLUDED_GENRES))
    keyword_exclusions: List[Dict[str, str]] = field(
        default_factory=lambda: [dict(rule) for rule in KEYWORD_EXCLUSIONS]
    )
    video_venues: List[str] = field(default_factory=lambda: list(VIDEO_VENUES))
    enabled_sources: Optional[List[str]] = None


def load_settings() -> Settings:
    """
    Build settings from environment variables.

    Returns:
        Settings populated from LOG_LEVEL, TIMEOUT_SECONDS, MAX_WORKERS,
        TICKETMASTER_API_KEY, YOUTUBE_API_KEY, PREFERRED_VENUES and
        ENABLED_SOURCES
    """
    enabled = os.environ.get('ENABLED_SOURCES')
    return Settings(
        log_level=os.environ.get('LOG_LEVEL', 'INFO'),
        timeout_seconds=int(os.environ.get('TIMEOUT_SECONDS', '30')),
        max_workers=int(os.environ.get('MAX_WORKERS', '8')),
        ticketmaster_api_key=os.environ.get('TICKETMASTER_API_KEY') or None,
        youtube_api_key=os.environ.get('YOUTUBE_API_KEY') or None,
        preferred_venues=_split_env_list(
            os.environ.get('PREFERRED_VENUES'), PREFERRED_VENUES
        ),
        enabled_sources=_split_env_list(enabled, []) if enabled else None,
    )
