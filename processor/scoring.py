"""Match-score heuristics used for ordering events."""
from typing import Iterable, Optional

from config import PREFERRED_VENUES
from processor.models import NormalizedEvent

BASE_SCORE = 70
PREFERRED_VENUE_BONUS = 15
MUSIC_BONUS = 10
MAX_SCORE = 98

# Extra weight for preferred venues when sorting
SORT_VENUE_BOOST = 10


def is_preferred_venue(venue: Optional[str], preferred_venues: Iterable[str] = PREFERRED_VENUES) -> bool:
    """
    Check whether a venue name contains any preferred-venue keyword.

    Args:
        venue: Venue name
        preferred_venues: Keywords matched case-insensitively as substrings

    Returns:
        True if any keyword matches
    """
    if not venue:
        return False
    lowered = venue.lower()
    return any(keyword.lower() in lowered for keyword in preferred_venues)


def calculate_match_score(venue: Optional[str], is_music: bool,
                          preferred_venues: Iterable[str] = PREFERRED_VENUES) -> int:
    """Base score plus venue and music bonuses, capped at MAX_SCORE."""
    score = BASE_SCORE
    if is_preferred_venue(venue, preferred_venues):
        score += PREFERRED_VENUE_BONUS
    if is_music:
        score += MUSIC_BONUS
    return min(score, MAX_SCORE)


def boosted_score(event: NormalizedEvent, preferred_venues: Iterable[str] = PREFERRED_VENUES) -> int:
    boost = SORT_VENUE_BOOST if is_preferred_venue(event.venue, preferred_venues) else 0
    return (event.match_score or 0) + boost
