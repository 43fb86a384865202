"""Filter and sort engine for grouped events."""
import logging
from datetime import date
from typing import Dict, Iterable, List, Optional, Sequence, Union

from config import EXCLUDED_GENRES, FOOD_KEYWORDS, KEYWORD_EXCLUSIONS, PREFERRED_VENUES
from processor.grouping import group_events_by_name, grouping_key
from processor.models import ExclusionRule, FilterState, GroupedEvent, NormalizedEvent
from processor.scoring import boosted_score, is_preferred_venue

logger = logging.getLogger(__name__)

CATEGORIES = ('all', 'favorites', 'divebars', 'music', 'sports', 'food', 'hidden')


def _event_dates(event: NormalizedEvent) -> List[str]:
    dates = getattr(event, 'dates', None)
    if dates:
        return [d.date for d in dates]
    return [event.date] if event.date else []


class EventFilter:
    """Applies exclusion rules, user filters and ordering to events."""

    def __init__(
        self,
        preferred_venues: Optional[Sequence[str]] = None,
        excluded_genres: Optional[Sequence[str]] = None,
        keyword_exclusions: Optional[Iterable[Union[ExclusionRule, Dict[str, str]]]] = None,
        food_keywords: Optional[Sequence[str]] = None,
    ):
        """
        Initialize the filter engine.

        Args:
            preferred_venues: Venue keywords for the divebars category and sort boost
            excluded_genres: Genres that exclude an event when all of its genres match
            keyword_exclusions: Rules as ExclusionRule or {'keyword', 'source'} dicts
            food_keywords: Name keywords for the food category
        """
        self.preferred_venues = list(PREFERRED_VENUES if preferred_venues is None else preferred_venues)
        self.excluded_genres = {
            genre.lower() for genre in (EXCLUDED_GENRES if excluded_genres is None else excluded_genres)
        }
        rules = KEYWORD_EXCLUSIONS if keyword_exclusions is None else keyword_exclusions
        self.keyword_exclusions = [
            rule if isinstance(rule, ExclusionRule)
            else ExclusionRule(keyword=rule['keyword'], source=rule.get('source', 'all'))
            for rule in rules
        ]
        self.food_keywords = list(FOOD_KEYWORDS if food_keywords is None else food_keywords)

    def apply(self, events: Iterable[NormalizedEvent], state: FilterState,
              today: Optional[date] = None) -> List[GroupedEvent]:
        """
        Run the full filter pipeline.

        Past events, keyword and genre exclusions go first, then the user's
        category, genre and source selections. Surviving records are grouped
        by name and sorted.

        Args:
            events: Normalized or grouped events
            state: Current user filter state (not modified)
            today: Reference date for past-event filtering

        Returns:
            Ordered list of grouped events
        """
        filtered = self.filter_past(events, today=today)
        filtered = self.filter_excluded_keywords(filtered)
        filtered = self.filter_excluded_genres(filtered)
        filtered = self.filter_by_category(filtered, state.category, state.favorites, state.hidden)
        filtered = self.filter_by_genre(filtered, state.genres)
        filtered = self.filter_by_source(filtered, state.sources)
        grouped = group_events_by_name(filtered)
        ordered = self.sort_events(grouped, state.sort_by)
        logger.debug(f"Filter pipeline kept {len(ordered)} grouped events")
        return ordered

    def filter_past(self, events: Iterable[NormalizedEvent],
                    today: Optional[date] = None) -> List[NormalizedEvent]:
        """Keep events with at least one date today or later."""
        today_iso = (today or date.today()).isoformat()
        return [
            event for event in events
            if any(d >= today_iso for d in _event_dates(event))
        ]

    def filter_excluded_keywords(self, events: Iterable[NormalizedEvent]) -> List[NormalizedEvent]:
        kept = []
        for event in events:
            text = f"{event.name or ''} {event.description or ''}".lower()
            excluded = any(
                rule.applies_to(event.source) and rule.keyword.lower() in text
                for rule in self.keyword_exclusions
            )
            if not excluded:
                kept.append(event)
        return kept

    def filter_excluded_genres(self, events: Iterable[NormalizedEvent]) -> List[NormalizedEvent]:
        """Drop events whose genres are all excluded; genre-less events stay."""
        return [
            event for event in events
            if not event.genres
            or not all(genre.lower() in self.excluded_genres for genre in event.genres)
        ]

    def filter_by_category(self, events: Iterable[NormalizedEvent], category: str,
                           favorites: Iterable[str] = (), hidden: Iterable[str] = ()) -> List[NormalizedEvent]:
        """
        Filter events by category.

        Hidden-set membership is checked with the grouping key so hiding one
        occurrence hides every name variant of the event.

        Args:
            events: Events to filter
            category: One of CATEGORIES; anything else passes all events
            favorites: Favorite event ids
            hidden: Hidden grouping keys

        Returns:
            Filtered events
        """
        favorites = set(favorites)
        hidden = set(hidden)
        events = list(events)

        if category not in CATEGORIES:
            logger.warning(f"Unknown category '{category}', no category filter applied")
            return events

        def is_hidden(event: NormalizedEvent) -> bool:
            return grouping_key(event.name) in hidden

        if category == 'all':
            return [e for e in events if not is_hidden(e)]
        if category == 'favorites':
            return [e for e in events if e.id in favorites]
        if category == 'divebars':
            return [e for e in events if is_preferred_venue(e.venue, self.preferred_venues)]
        if category == 'music':
            return [e for e in events if e.genres and not is_hidden(e)]
        if category == 'sports':
            return [e for e in events if not e.genres and not is_hidden(e)]
        if category == 'food':
            return [
                e for e in events
                if any(keyword in e.name.lower() for keyword in self.food_keywords)
            ]
        return [e for e in events if is_hidden(e)]

    @staticmethod
    def filter_by_genre(events: Iterable[NormalizedEvent], selected_genres: Iterable[str]) -> List[NormalizedEvent]:
        selected = set(selected_genres)
        events = list(events)
        if not selected:
            return events
        return [e for e in events if any(genre in selected for genre in e.genres or [])]

    @staticmethod
    def filter_by_source(events: Iterable[NormalizedEvent], selected_sources: Iterable[str]) -> List[NormalizedEvent]:
        selected = set(selected_sources)
        events = list(events)
        if not selected:
            return events
        return [e for e in events if e.source in selected]

    def sort_events(self, events: Iterable[GroupedEvent], sort_by: str = 'date') -> List[GroupedEvent]:
        """
        Order events by earliest date then boosted score, or by score alone.

        Args:
            events: Grouped events
            sort_by: 'date' or 'score'

        Returns:
            New sorted list; ties keep their input order
        """
        def score(event: GroupedEvent) -> int:
            return boosted_score(event, self.preferred_venues)

        if sort_by == 'date':
            return sorted(events, key=lambda e: (min(_event_dates(e)), -score(e)))
        return sorted(events, key=lambda e: -score(e))


def apply_filters(events: Iterable[NormalizedEvent], state: FilterState,
                  today: Optional[date] = None) -> List[GroupedEvent]:
    return EventFilter().apply(events, state, today=today)
