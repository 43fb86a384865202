"""Ticketmaster Discovery API adapter."""
import logging
from typing import Any, Dict, List, Optional

from processor.models import NormalizedEvent
from processor.scoring import calculate_match_score
from scraper.base import SourceAdapter, SourceConfigurationError, USER_AGENT
from scraper.parsing import is_iso_date

logger = logging.getLogger(__name__)


class TicketmasterAdapter(SourceAdapter):
    """Adapter for Ticketmaster Discovery API event search results."""

    SOURCE = 'ticketmaster'
    SOURCE_NAME = 'Ticketmaster'
    URL = 'https://app.ticketmaster.com/discovery/v2/events.json'

    CITY = 'Charlotte'
    STATE_CODE = 'NC'
    PAGE_SIZE = 200

    def __init__(self, api_key: Optional[str] = None, **kwargs):
        super().__init__(**kwargs)
        self.api_key = api_key

    def fetch_raw(self) -> Dict[str, Any]:
        """
        Query the event search endpoint.

        Returns:
            Decoded JSON payload

        Raises:
            SourceConfigurationError: If no API key is configured
            requests.RequestException: On transport failure or non-2xx status
            ValueError: If the body is not JSON
        """
        if not self.api_key:
            raise SourceConfigurationError('TICKETMASTER_API_KEY is not configured')

        params = {
            'apikey': self.api_key,
            'city': self.CITY,
            'stateCode': self.STATE_CODE,
            'size': self.PAGE_SIZE,
            'sort': 'date,asc',
        }
        logger.info(f"Fetching {self.SOURCE_NAME} events for {self.CITY}, {self.STATE_CODE}")
        response = self.session.get(
            self.URL,
            params=params,
            headers={'User-Agent': USER_AGENT},
            timeout=self.timeout
        )
        response.raise_for_status()
        return response.json()

    def parse(self, raw: Dict[str, Any]) -> List[NormalizedEvent]:
        """
        Flatten Discovery API events.

        Args:
            raw: JSON payload with events under "_embedded.events" (or "events")

        Returns:
            List of NormalizedEvent objects
        """
        if not isinstance(raw, dict):
            return []

        items = (raw.get('_embedded') or {}).get('events') or raw.get('events') or []
        events = []
        for item in items:
            try:
                event = self._parse_event(item)
                if event:
                    events.append(event)
            except Exception as e:
                logger.warning(f"Failed to parse {self.SOURCE_NAME} event: {e}")
                continue
        return events

    def _parse_event(self, item: Dict[str, Any]) -> Optional[NormalizedEvent]:
        name = (item.get('name') or '').strip()
        start = (item.get('dates') or {}).get('start') or {}
        local_date = start.get('localDate')
        if not name or not is_iso_date(local_date):
            return None

        genres = self._extract_genres(item)
        is_music = self._is_music(item)

        venue_data = ((item.get('_embedded') or {}).get('venues') or [{}])[0] or {}
        venue = venue_data.get('name') or 'Venue TBA'

        price = 0
        price_ranges = item.get('priceRanges') or []
        if price_ranges:
            price = price_ranges[0].get('min') or 0

        return NormalizedEvent(
            id=f"tm-{item.get('id')}",
            name=name,
            date=local_date,
            time=start.get('localTime'),
            venue=venue,
            venue_address=self._format_address(venue_data),
            city=(venue_data.get('city') or {}).get('name') or self.CITY,
            description=item.get('info') or item.get('pleaseNote') or name,
            price=price,
            ticket_url=item.get('url'),
            image_url=self._best_image(item.get('images') or []),
            genres=genres,
            source=self.SOURCE,
            source_type=self.SOURCE_TYPE,
            match_score=calculate_match_score(venue, is_music, self.preferred_venues),
        )

    @staticmethod
    def _classification(item: Dict[str, Any]) -> Dict[str, Any]:
        classifications = item.get('classifications') or [{}]
        return classifications[0] or {}

    def _extract_genres(self, item: Dict[str, Any]) -> List[str]:
        classification = self._classification(item)
        genres = []
        for level in ('segment', 'genre', 'subGenre'):
            name = (classification.get(level) or {}).get('name')
            if name and name != 'Undefined':
                genres.append(name)
        return genres

    def _is_music(self, item: Dict[str, Any]) -> bool:
        classification = self._classification(item)
        segment = ((classification.get('segment') or {}).get('name') or '').lower()
        genre = ((classification.get('genre') or {}).get('name') or '').lower()
        return 'music' in segment or 'music' in genre

    @staticmethod
    def _best_image(images: List[Dict[str, Any]]) -> Optional[str]:
        """Widest image; the first one wins ties."""
        if not images:
            return None
        best = max(images, key=lambda image: image.get('width') or 0)
        return best.get('url')

    @staticmethod
    def _format_address(venue: Dict[str, Any]) -> str:
        line1 = (venue.get('address') or {}).get('line1')
        if not line1:
            return ''
        city = (venue.get('city') or {}).get('name') or ''
        state = (venue.get('state') or {}).get('stateCode') or ''
        postal = venue.get('postalCode') or ''
        return f"{line1}, {city}, {state} {postal}".strip()
