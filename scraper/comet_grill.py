"""Comet Grill scraper (Squarespace event list)."""
import logging
from typing import List, Optional

from bs4 import BeautifulSoup

from processor.models import NormalizedEvent
from processor.scoring import calculate_match_score
from scraper.base import SourceAdapter
from scraper.parsing import clean_text, parse_date_text, parse_time_text, slugify_id

logger = logging.getLogger(__name__)


class CometGrillScraper(SourceAdapter):
    """Scraper for cometgrillcharlotte.com/music."""

    SOURCE = 'comet-grill'
    SOURCE_NAME = 'Comet Grill'
    SOURCE_TYPE = 'venue'
    URL = 'https://www.cometgrillcharlotte.com/music'

    VENUE = 'Comet Grill'
    ADDRESS = '2224 Park Road, Charlotte, NC 28203'
    GENRES = ['Live Music']

    LIST_SELECTOR = '[class*="events-list"]'
    ITEM_SELECTOR = 'article[class*="eventlist-event"]'
    DIVIDER_SELECTOR = '[class*="eventlist-past-upcoming-divider"]'

    def parse(self, raw: str) -> List[NormalizedEvent]:
        """
        Parse upcoming events from the Squarespace event list.

        Items that appear after the past/upcoming divider are past events and
        are skipped, as are items dated before today.

        Args:
            raw: Page HTML

        Returns:
            List of NormalizedEvent objects
        """
        soup = BeautifulSoup(raw or '', 'html.parser')

        container = soup.select_one(self.LIST_SELECTOR)
        if container is None:
            logger.info(f"No events list found on {self.SOURCE_NAME} page")
            return []

        divider = soup.select_one(self.DIVIDER_SELECTOR)
        if divider is None:
            logger.info(f"No upcoming events divider on {self.SOURCE_NAME} page, filtering by date only")

        events = []
        for element in container.select(self.ITEM_SELECTOR):
            if divider is not None and self._is_after(element, divider):
                continue
            try:
                event = self._parse_event_element(element)
                if event and self.is_upcoming(event.date):
                    events.append(event)
            except Exception as e:
                logger.warning(f"Failed to parse {self.SOURCE_NAME} event element: {e}")
                continue
        return events

    @staticmethod
    def _is_after(element, divider) -> bool:
        return any(previous is divider for previous in element.previous_elements)

    def _parse_event_element(self, element) -> Optional[NormalizedEvent]:
        title_elem = element.select_one('a[class*="eventlist-title-link"]')
        date_elem = element.select_one('time[class*="event-date"]')
        if title_elem is None or date_elem is None:
            return None

        name = clean_text(title_elem.get_text(' ', strip=True))
        date_text = date_elem.get('datetime') or date_elem.get_text(' ', strip=True)
        date_str = parse_date_text(date_text, today=self.today)
        if not name or not date_str:
            logger.debug(f"Skipping {self.SOURCE_NAME} item with title={name!r} date={date_text!r}")
            return None

        start_elem = element.select_one('[class*="event-time-localized-start"]')
        venue_elem = element.select_one('[class*="eventlist-meta-address-maplink"]')
        venue = clean_text(venue_elem.get_text(' ', strip=True)) if venue_elem else ''

        return NormalizedEvent(
            id=slugify_id(self.SOURCE, name, date_str),
            name=name,
            date=date_str,
            time=parse_time_text(start_elem.get_text(' ', strip=True)) if start_elem else None,
            venue=venue or self.VENUE,
            venue_address=self.ADDRESS,
            description=f"{name} at {self.VENUE}",
            price=0,
            ticket_url=None,
            genres=list(self.GENRES),
            source=self.SOURCE,
            source_type=self.SOURCE_TYPE,
            match_score=calculate_match_score(self.VENUE, True, self.preferred_venues),
        )
