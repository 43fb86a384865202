"""CLTtoday RSS feed adapter."""
import logging
import re
from typing import List, Optional

from processor.models import NormalizedEvent
from scraper.base import SourceAdapter
from scraper.parsing import decode_html_entities, is_iso_date, strip_tags

logger = logging.getLogger(__name__)

_ITEM = re.compile(r'<item>([\s\S]*?)</item>')
_DETAIL_LINK = re.compile(
    r'clttoday\.6amcity\.com/events#/details/[^/]+/\d+/(\d{4}-\d{2}-\d{2})'
)
_IMAGE = re.compile(r'<img[^>]+src="([^"]+)"')


def get_field(item_xml: str, field_name: str) -> Optional[str]:
    """
    Extract one field from an RSS item.

    A CDATA-wrapped value is preferred; a plain element body is the fallback.
    """
    name = re.escape(field_name)
    cdata = re.search(
        rf'<{name}[^>]*><!\[CDATA\[([\s\S]*?)\]\]></{name}>', item_xml, re.IGNORECASE
    )
    if cdata:
        return cdata.group(1).strip()

    simple = re.search(rf'<{name}[^>]*>([\s\S]*?)</{name}>', item_xml, re.IGNORECASE)
    return simple.group(1).strip() if simple else None


class CltTodayAdapter(SourceAdapter):
    """Adapter for CLTtoday event round-up articles."""

    SOURCE = 'clttoday'
    SOURCE_NAME = 'CLTtoday'
    URL = 'https://clttoday.6amcity.com/events.rss'

    VENUE = 'CLTtoday Article'
    BASE_SCORE = 60
    EVENT_CATEGORY_BONUS = 10
    MAX_DESCRIPTION_LENGTH = 300

    def parse(self, raw: str) -> List[NormalizedEvent]:
        """
        Parse articles from the RSS text.

        Each article yields one event dated at its earliest upcoming detail
        link date. Articles without a valid detail link date are skipped.

        Args:
            raw: RSS XML text

        Returns:
            List of NormalizedEvent objects
        """
        events = []
        item_count = 0
        for match in _ITEM.finditer(raw or ''):
            item_count += 1
            try:
                event = self._parse_item(match.group(1))
                if event:
                    events.append(event)
            except Exception as e:
                logger.warning(f"Failed to parse {self.SOURCE_NAME} item {item_count}: {e}")
                continue

        logger.debug(f"Matched {item_count} RSS items, parsed {len(events)} events")
        return events

    def _parse_item(self, item_xml: str) -> Optional[NormalizedEvent]:
        title = decode_html_entities(get_field(item_xml, 'title'))
        if not title:
            return None

        link = get_field(item_xml, 'link')
        description = get_field(item_xml, 'description')
        category = get_field(item_xml, 'category')
        content = get_field(item_xml, 'content:encoded')

        event_dates = [d for d in _DETAIL_LINK.findall(content or description or '') if is_iso_date(d)]
        if not event_dates:
            return None

        event_date = self.pick_event_date(event_dates)

        image = None
        image_match = _IMAGE.search(description or '')
        if image_match:
            image = image_match.group(1)

        clean_description = decode_html_entities(strip_tags(description))
        clean_description = (clean_description or '')[:self.MAX_DESCRIPTION_LENGTH]

        score = self.BASE_SCORE
        if category and 'event' in category.lower():
            score += self.EVENT_CATEGORY_BONUS

        return NormalizedEvent(
            id=f"clt-{link}",
            name=title,
            date=event_date,
            venue=self.VENUE,
            description=clean_description or title,
            ticket_url=link,
            image_url=image,
            genres=[category] if category else ['News'],
            source=self.SOURCE,
            match_score=score,
        )

    def pick_event_date(self, dates: List[str]) -> str:
        """Earliest date that is today or later, else the earliest found."""
        ordered = sorted(dates)
        for candidate in ordered:
            if self.is_upcoming(candidate):
                return candidate
        return ordered[0]
