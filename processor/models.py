"""Data models for event normalization and filtering."""
from dataclasses import dataclass, field, asdict
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Optional, Set


@dataclass
class NormalizedEvent:
    """Common event record produced by every source adapter."""
    id: str
    name: str
    date: str
    venue: str
    source: str
    time: Optional[str] = None
    end_time: Optional[str] = None
    venue_address: str = ''
    city: str = 'Charlotte'
    description: Optional[str] = None
    price: float = 0
    ticket_url: Optional[str] = None
    image_url: Optional[str] = None
    genres: List[str] = field(default_factory=list)
    source_type: Optional[str] = None
    match_score: int = 0
    artist_name: Optional[str] = None
    youtube_links: List[Dict[str, str]] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        """Render the camelCase wire shape."""
        data = {
            'id': self.id,
            'name': self.name,
            'date': self.date,
            'time': self.time,
            'endTime': self.end_time,
            'venue': self.venue,
            'venueAddress': self.venue_address,
            'city': self.city,
            'description': self.description,
            'price': self.price,
            'ticketUrl': self.ticket_url,
            'imageUrl': self.image_url,
            'genres': list(self.genres),
            'source': self.source,
            'sourceType': self.source_type,
            'matchScore': self.match_score,
        }
        if self.artist_name:
            data['artistName'] = self.artist_name
        if self.youtube_links:
            data['youtubeLinks'] = list(self.youtube_links)
        return data


@dataclass
class EventDate:
    """One occurrence of a grouped event."""
    date: str
    ticket_url: Optional[str] = None
    id: Optional[str] = None


@dataclass
class GroupedEvent(NormalizedEvent):
    """Event merged across all of its recurrences."""
    dates: List[EventDate] = field(default_factory=list)

    @classmethod
    def from_event(cls, event: NormalizedEvent, name: str) -> 'GroupedEvent':
        values = asdict(event)
        values.pop('dates', None)
        values['name'] = name
        values['genres'] = list(event.genres)
        return cls(**values)

    def to_dict(self) -> Dict[str, Any]:
        # grouping imports models
        from processor.grouping import has_useful_description

        data = super().to_dict()
        data['dates'] = [
            {'date': d.date, 'ticketUrl': d.ticket_url, 'id': d.id}
            for d in self.dates
        ]
        data['hasUsefulDescription'] = has_useful_description(self)
        return data


@dataclass
class ExclusionRule:
    """Keyword exclusion, optionally restricted to one source."""
    keyword: str
    source: str = 'all'

    def applies_to(self, source: str) -> bool:
        return self.source == 'all' or self.source == source


@dataclass
class FilterState:
    """User filter selections for one session."""
    category: str = 'all'
    genres: Set[str] = field(default_factory=set)
    sources: Set[str] = field(default_factory=set)
    sort_by: str = 'date'
    favorites: Set[str] = field(default_factory=set)
    hidden: Set[str] = field(default_factory=set)

    def toggle_genre(self, genre: str) -> None:
        self.genres ^= {genre}

    def toggle_source(self, source: str) -> None:
        self.sources ^= {source}

    def toggle_favorite(self, event_id: str) -> None:
        self.favorites ^= {event_id}

    def toggle_hidden(self, event: NormalizedEvent) -> None:
        from processor.grouping import grouping_key

        self.hidden ^= {grouping_key(event.name)}

    def clear_filters(self) -> None:
        """Reset category, genre and source selections; favorites and hidden stay."""
        self.category = 'all'
        self.genres = set()
        self.sources = set()

    @property
    def has_active_filters(self) -> bool:
        return bool(self.genres or self.sources)

    @classmethod
    def from_query(cls, params: Optional[Dict[str, str]]) -> 'FilterState':
        """
        Build a filter state from request query parameters.

        Args:
            params: Query string mapping; set-valued keys are comma-separated

        Returns:
            FilterState instance
        """
        from processor.grouping import grouping_key

        params = params or {}

        def as_set(key: str) -> Set[str]:
            return _split_csv(params.get(key))

        sort_by = params.get('sort') or 'date'
        if sort_by not in ('date', 'score'):
            sort_by = 'date'

        return cls(
            category=params.get('category') or 'all',
            genres=as_set('genres'),
            sources=as_set('sources'),
            sort_by=sort_by,
            favorites=as_set('favorites'),
            hidden={grouping_key(value) for value in as_set('hidden')},
        )


def _split_csv(value: Optional[str]) -> Set[str]:
    if not value:
        return set()
    return {item.strip() for item in value.split(',') if item.strip()}


@dataclass
class SourceResult:
    """Outcome of fetching and parsing one upstream source."""
    source: str
    source_name: str
    events: List[NormalizedEvent] = field(default_factory=list)
    source_type: Optional[str] = None
    scraped_at: str = field(
        default_factory=lambda: datetime.now(timezone.utc).isoformat()
    )
    error: Optional[str] = None
    details: Optional[str] = None

    @property
    def success(self) -> bool:
        return self.error is None

    def status(self) -> Dict[str, Any]:
        return {
            'source': self.source,
            'sourceName': self.source_name,
            'success': self.success,
            'eventCount': len(self.events),
            'error': self.error,
            'details': self.details,
            'scrapedAt': self.scraped_at,
        }


def flatten_events(results: Iterable[SourceResult]) -> List[NormalizedEvent]:
    """Collect events from every successful source result."""
    events = []
    for result in results:
        if result.success:
            events.extend(result.events)
    return events
