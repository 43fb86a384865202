"""The Fillmore Charlotte adapter (JSON-LD structured data)."""
import logging
from typing import Any, Dict, List, Optional

from bs4 import BeautifulSoup

from processor.models import NormalizedEvent
from processor.scoring import calculate_match_score
from scraper.base import SourceAdapter
from scraper.parsing import (
    decode_html_entities,
    extract_json_ld,
    json_ld_types,
    slugify_id,
    split_iso_datetime,
)

logger = logging.getLogger(__name__)


class FillmoreAdapter(SourceAdapter):
    """Adapter for fillmorenc.com, which embeds one JSON-LD block per show."""

    SOURCE = 'fillmore'
    SOURCE_NAME = 'The Fillmore Charlotte'
    SOURCE_TYPE = 'venue'
    URL = 'https://www.fillmorenc.com/'

    EVENT_TYPES = {'MusicEvent', 'Event'}
    MAIN_VENUE = 'The Fillmore Charlotte'
    SUB_VENUE = 'The Underground'
    SUB_VENUE_KEYWORD = 'underground'
    DEFAULT_GENRES = ['Live Music']

    def parse(self, raw: str) -> List[NormalizedEvent]:
        """
        Parse music events from the page's JSON-LD blocks.

        Args:
            raw: Page HTML

        Returns:
            List of NormalizedEvent objects
        """
        soup = BeautifulSoup(raw or '', 'html.parser')
        events = []
        for item in extract_json_ld(soup):
            if not self.EVENT_TYPES.intersection(json_ld_types(item)):
                continue
            try:
                event = self._parse_item(item)
                if event:
                    events.append(event)
            except Exception as e:
                logger.warning(f"Failed to convert {self.SOURCE_NAME} JSON-LD event: {e}")
                continue
        return events

    def _parse_item(self, item: Dict[str, Any]) -> Optional[NormalizedEvent]:
        name = decode_html_entities((item.get('name') or '').strip())
        # Date as written upstream, without time-zone conversion
        date_str, time_str = split_iso_datetime(item.get('startDate'))
        if not name or not date_str:
            return None

        location = item.get('location') if isinstance(item.get('location'), dict) else {}
        address = location.get('address') if isinstance(location.get('address'), dict) else {}
        location_name = decode_html_entities(location.get('name') or self.MAIN_VENUE)
        venue = self.SUB_VENUE if self.SUB_VENUE_KEYWORD in location_name.lower() else self.MAIN_VENUE

        image = item.get('image')
        if isinstance(image, list):
            image = image[0] if image else None
        if isinstance(image, dict):
            image = image.get('url')

        genre = item.get('genre')
        if isinstance(genre, str):
            genres = [genre]
        elif isinstance(genre, list):
            genres = [str(g) for g in genre if g]
        else:
            genres = list(self.DEFAULT_GENRES)

        return NormalizedEvent(
            id=slugify_id(self.SOURCE, name, date_str),
            name=name,
            date=date_str,
            time=time_str,
            venue=venue,
            venue_address=self._format_address(address),
            city=address.get('addressLocality') or 'Charlotte',
            description=name,
            ticket_url=item.get('url'),
            image_url=image,
            genres=genres,
            source=self.SOURCE,
            source_type=self.SOURCE_TYPE,
            match_score=calculate_match_score(venue, True, self.preferred_venues),
        )

    @staticmethod
    def _format_address(address: Dict[str, Any]) -> str:
        street = address.get('streetAddress') or ''
        locality = address.get('addressLocality') or ''
        region = address.get('addressRegion') or ''
        postal = address.get('postalCode') or ''
        parts = [part for part in (street, locality, f"{region} {postal}".strip()) if part]
        return ', '.join(parts)
