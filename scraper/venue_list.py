"""Scrapers for venue sites that list shows as generic event blocks."""
import logging
import re
from typing import Any, Dict, List, Optional

from bs4 import BeautifulSoup

from processor.event_processor import EventProcessor
from processor.models import NormalizedEvent
from processor.scoring import calculate_match_score
from scraper.base import SourceAdapter
from scraper.parsing import (
    clean_text,
    extract_json_ld,
    json_ld_types,
    parse_date_text,
    parse_time_text,
    split_iso_datetime,
)

logger = logging.getLogger(__name__)

_HEADING = re.compile(r'^h[1-6]$')


def _has_class_fragment(fragment: str):
    def match(value: Optional[str]) -> bool:
        return bool(value) and fragment in value
    return match


class EventBlockScraper(SourceAdapter):
    """
    Scraper for pages rendering each show as an element whose class
    mentions "event".

    Subclasses set the venue details. Items are <article> elements, with
    <div> elements as the fallback when no article matches.
    """

    SOURCE_TYPE = 'venue'
    VENUE = ''
    VENUE_ADDRESS = ''
    GENRES: List[str] = ['Live Music']
    ITEM_CLASS_FRAGMENT = 'event'
    TITLE_CLASS_FRAGMENT = 'title'
    TICKET_URL: Optional[str] = None

    def parse(self, raw: str) -> List[NormalizedEvent]:
        """
        Parse event blocks from the page.

        Args:
            raw: Page HTML

        Returns:
            List of NormalizedEvent objects dated today or later
        """
        soup = BeautifulSoup(raw or '', 'html.parser')
        events = []
        for element in self._find_items(soup):
            try:
                event = self._parse_event_element(element)
                if event and self.is_upcoming(event.date):
                    events.append(event)
            except Exception as e:
                logger.warning(f"Failed to parse {self.SOURCE_NAME} event element: {e}")
                continue

        if not events:
            logger.info(f"No events found on {self.SOURCE_NAME} page")
        return self._unique(events)

    def _find_items(self, soup: BeautifulSoup) -> List[Any]:
        matcher = _has_class_fragment(self.ITEM_CLASS_FRAGMENT)
        items = soup.find_all('article', class_=matcher)
        if items:
            return items

        # Innermost divs holding both a title and a date; wrappers and
        # event-title fragments are not items
        candidates = [
            div for div in soup.find_all('div', class_=matcher)
            if self._extract_title(div) and self._extract_date(div)
        ]
        return [
            div for div in candidates
            if not any(
                parent is div for other in candidates if other is not div for parent in other.parents
            )
        ]

    @staticmethod
    def _unique(events: List[NormalizedEvent]) -> List[NormalizedEvent]:
        seen = set()
        unique = []
        for event in events:
            if event.id not in seen:
                seen.add(event.id)
                unique.append(event)
        return unique

    def _extract_title(self, element) -> str:
        title_elem = element.find(_HEADING)
        if title_elem is None:
            title_elem = element.find(class_=_has_class_fragment(self.TITLE_CLASS_FRAGMENT))
        return clean_text(title_elem.get_text(' ', strip=True)) if title_elem else ''

    def _extract_date(self, element) -> Optional[str]:
        time_elem = element.find('time')
        if time_elem is not None and time_elem.get('datetime'):
            parsed = parse_date_text(time_elem['datetime'], today=self.today)
            if parsed:
                return parsed
        return parse_date_text(element.get_text(' ', strip=True), today=self.today)

    def _parse_event_element(self, element) -> Optional[NormalizedEvent]:
        name = self._extract_title(element)
        date_str = self._extract_date(element)
        if not name or not date_str:
            return None

        return self.build_event(
            name=name,
            date_str=date_str,
            time=parse_time_text(element.get_text(' ', strip=True)),
        )

    def build_event(self, name: str, date_str: str, time: Optional[str] = None,
                    description: Optional[str] = None, image_url: Optional[str] = None,
                    ticket_url: Optional[str] = None) -> NormalizedEvent:
        return NormalizedEvent(
            id=EventProcessor.generate_event_id(self.SOURCE, name, date_str),
            name=name,
            date=date_str,
            time=time,
            venue=self.VENUE,
            venue_address=self.VENUE_ADDRESS,
            description=description or name,
            price=0,
            ticket_url=ticket_url or self.TICKET_URL,
            image_url=image_url,
            genres=list(self.GENRES),
            source=self.SOURCE,
            source_type=self.SOURCE_TYPE,
            match_score=calculate_match_score(self.VENUE, True, self.preferred_venues),
        )


class SnugHarborScraper(EventBlockScraper):
    """Scraper for Snug Harbor (snugrock.com)."""

    SOURCE = 'snugharbor'
    SOURCE_NAME = 'Snug Harbor'
    URL = 'https://snugrock.com'

    VENUE = 'Snug Harbor'
    VENUE_ADDRESS = '1228 Gordon St, Charlotte, NC 28205'


class SmokeyJoesScraper(EventBlockScraper):
    """
    Scraper for Smokey Joe's Cafe.

    Structured JSON-LD events are used when the page has them; otherwise
    the page is read as generic event blocks.
    """

    SOURCE = 'smokeyjoes'
    SOURCE_NAME = "Smokey Joe's Cafe"
    URL = 'https://www.smokeyjoes.cafe/events'

    VENUE = "Smokey Joe's Cafe"
    VENUE_ADDRESS = '510 Briar Creek Rd, Charlotte, NC 28205'
    GENRES = ['Music', 'Live']
    TICKET_URL = 'https://smokeyjoes.cafe'
    JSON_LD_TYPES = {'Event', 'EventSeries', 'MusicEvent'}

    def parse(self, raw: str) -> List[NormalizedEvent]:
        soup = BeautifulSoup(raw or '', 'html.parser')
        structured = [
            item for item in extract_json_ld(soup)
            if self.JSON_LD_TYPES.intersection(json_ld_types(item))
        ]
        if not structured:
            return super().parse(raw)

        events = []
        for item in structured:
            try:
                event = self._parse_json_ld(item)
                if event and self.is_upcoming(event.date):
                    events.append(event)
            except Exception as e:
                logger.warning(f"Failed to convert {self.SOURCE_NAME} JSON-LD event: {e}")
                continue
        return self._unique(events)

    def _parse_json_ld(self, item: Dict[str, Any]) -> Optional[NormalizedEvent]:
        name = clean_text(item.get('name'))
        date_str, time_str = split_iso_datetime(item.get('startDate'))
        if not name or not date_str:
            return None

        image = item.get('image')
        if isinstance(image, list):
            image = image[0] if image else None

        return self.build_event(
            name=name,
            date_str=date_str,
            time=time_str,
            description=clean_text(item.get('description')) or None,
            image_url=image if isinstance(image, str) else None,
            ticket_url=item.get('url'),
        )
