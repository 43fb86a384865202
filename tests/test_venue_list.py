"""Unit tests for the event-block venue scrapers."""
import json
from datetime import date

import responses

from processor.event_processor import EventProcessor
from scraper.venue_list import SmokeyJoesScraper, SnugHarborScraper

TODAY = date(2024, 10, 1)

SNUG_PAGE = """
<html><body>
<div class="events-wrapper">
    <article class="event-card">
        <h2>Valley Maker</h2>
        <time datetime="2024-10-10">Thu Oct 10</time>
        <p>Doors 8pm</p>
    </article>
    <article class="event-card">
        <h3>Old Show</h3>
        <span>September 1, 2024</span>
    </article>
    <article class="event-card">
        <h3>No Date Yet</h3>
    </article>
    <article class="event-card">
        <h2>Valley Maker</h2>
        <time datetime="2024-10-10">Thu Oct 10</time>
    </article>
</div>
</body></html>
"""

DIV_PAGE = """
<html><body>
<div class="events">
    <div class="event-item">
        <div class="event-title">Punk Rock Karaoke</div>
        <div class="event-date">October 18, 2024</div>
    </div>
    <div class="event-item">
        <div class="event-title">Hip Hop Showcase</div>
        <div class="event-date">10/25/2024 9:30 PM</div>
    </div>
</div>
</body></html>
"""


class TestSnugHarborScraper:
    """Test cases for SnugHarborScraper class."""

    def test_parse_articles(self):
        """Test article blocks with headings and dates."""
        events = SnugHarborScraper(today=TODAY).parse(SNUG_PAGE)

        assert len(events) == 1
        event = events[0]
        assert event.name == 'Valley Maker'
        assert event.date == '2024-10-10'
        assert event.time == '20:00'
        assert event.venue == 'Snug Harbor'
        assert event.venue_address == '1228 Gordon St, Charlotte, NC 28205'
        assert event.id == EventProcessor.generate_event_id('snugharbor', 'Valley Maker', '2024-10-10')
        assert event.genres == ['Live Music']
        # preferred venue (+15) and music (+10)
        assert event.match_score == 95

    def test_div_fallback(self):
        """Test innermost event divs are used when no article matches."""
        events = SnugHarborScraper(today=TODAY).parse(DIV_PAGE)

        assert [(e.name, e.date) for e in events] == [
            ('Punk Rock Karaoke', '2024-10-18'),
            ('Hip Hop Showcase', '2024-10-25'),
        ]
        assert events[1].time == '21:30'

    def test_empty_page(self):
        """Test a page with no event blocks."""
        assert SnugHarborScraper(today=TODAY).parse('<html></html>') == []

    @responses.activate
    def test_fetch_events(self):
        """Test fetching the venue page end to end."""
        responses.add(responses.GET, 'https://snugrock.com', body=SNUG_PAGE, status=200)

        result = SnugHarborScraper(today=TODAY).fetch_events()

        assert result.success
        assert result.source_type == 'venue'
        assert len(result.events) == 1


class TestSmokeyJoesScraper:
    """Test cases for SmokeyJoesScraper class."""

    def test_parse_json_ld(self):
        """Test structured events take priority over markup."""
        block = json.dumps([
            {
                '@type': 'Event',
                'name': 'Bluegrass Jam',
                'startDate': '2024-10-08T19:00:00-04:00',
                'description': 'Bring your banjo',
                'url': 'https://smokeyjoes.cafe/events/bluegrass',
                'image': ['https://img/banjo.jpg'],
            },
            {'@type': 'Event', 'name': 'Past Jam', 'startDate': '2024-09-08T19:00:00'},
            {'@type': 'Place', 'name': "Smokey Joe's"},
        ])
        html = f'<script type="application/ld+json">{block}</script>{SNUG_PAGE}'

        events = SmokeyJoesScraper(today=TODAY).parse(html)

        assert len(events) == 1
        event = events[0]
        assert event.name == 'Bluegrass Jam'
        assert event.date == '2024-10-08'
        assert event.time == '19:00'
        assert event.description == 'Bring your banjo'
        assert event.ticket_url == 'https://smokeyjoes.cafe/events/bluegrass'
        assert event.image_url == 'https://img/banjo.jpg'
        assert event.venue == "Smokey Joe's Cafe"
        assert event.genres == ['Music', 'Live']

    def test_markup_fallback(self):
        """Test event blocks are used without JSON-LD."""
        events = SmokeyJoesScraper(today=TODAY).parse(DIV_PAGE)

        assert len(events) == 2
        assert events[0].ticket_url == 'https://smokeyjoes.cafe'
        assert events[0].description == 'Punk Rock Karaoke'
        assert events[0].source == 'smokeyjoes'
