"""Unit tests for FillmoreAdapter."""
import json

import responses

from scraper.fillmore import FillmoreAdapter

PAGE_URL = 'https://www.fillmorenc.com/'


def page(*blocks):
    scripts = ''.join(
        f'<script type="application/ld+json">{block if isinstance(block, str) else json.dumps(block)}</script>'
        for block in blocks
    )
    return f"<html><head>{scripts}</head><body></body></html>"


MAIN_SHOW = {
    '@type': 'MusicEvent',
    'name': 'Goose &amp; Friends',
    'startDate': '2024-11-01T20:00:00-04:00',
    'url': 'https://www.fillmorenc.com/shows/goose',
    'image': ['https://img/goose.jpg', 'https://img/goose-2.jpg'],
    'location': {
        'name': 'The Fillmore Charlotte',
        'address': {
            'streetAddress': '820 Hamilton St',
            'addressLocality': 'Charlotte',
            'addressRegion': 'NC',
            'postalCode': '28206',
        },
    },
}

UNDERGROUND_SHOW = {
    '@type': 'Event',
    'name': 'Late Night DJ Set',
    'startDate': '2024-11-02T23:30:00-04:00',
    'image': {'url': 'https://img/dj.jpg'},
    'genre': ['Electronic', 'Dance'],
    'location': {'name': 'The Underground at The Fillmore'},
}


class TestFillmoreAdapter:
    """Test cases for FillmoreAdapter class."""

    def test_parse_main_room_event(self):
        """Test a MusicEvent block at the main room."""
        events = FillmoreAdapter().parse(page(MAIN_SHOW))

        assert len(events) == 1
        event = events[0]
        assert event.id == 'fillmore-goose-friends-2024-11-01'
        assert event.name == 'Goose & Friends'
        assert event.date == '2024-11-01'
        assert event.time == '20:00'
        assert event.venue == 'The Fillmore Charlotte'
        assert event.venue_address == '820 Hamilton St, Charlotte, NC 28206'
        assert event.ticket_url == 'https://www.fillmorenc.com/shows/goose'
        assert event.image_url == 'https://img/goose.jpg'
        assert event.genres == ['Live Music']
        assert event.source_type == 'venue'
        assert event.match_score == 80

    def test_parse_underground_event(self):
        """Test sub-venue mapping, dict images and explicit genres."""
        event = FillmoreAdapter().parse(page(UNDERGROUND_SHOW))[0]

        assert event.venue == 'The Underground'
        assert event.date == '2024-11-02'
        assert event.time == '23:30'
        assert event.image_url == 'https://img/dj.jpg'
        assert event.genres == ['Electronic', 'Dance']
        assert event.venue_address == ''

    def test_malformed_block_does_not_drop_others(self):
        """Test that one bad JSON-LD block is skipped on its own."""
        events = FillmoreAdapter().parse(page(MAIN_SHOW, '{broken', UNDERGROUND_SHOW))

        assert [e.venue for e in events] == ['The Fillmore Charlotte', 'The Underground']

    def test_non_event_types_ignored(self):
        """Test organization and venue blocks are not events."""
        events = FillmoreAdapter().parse(page(
            {'@type': 'Organization', 'name': 'Live Nation'},
            {'@type': 'MusicEvent', 'name': 'No Date'},
            {'@type': 'MusicEvent', 'name': 'Bad Date', 'startDate': 'TBD'},
        ))

        assert events == []

    @responses.activate
    def test_fetch_events(self):
        """Test fetching the venue page end to end."""
        responses.add(responses.GET, PAGE_URL, body=page(MAIN_SHOW), status=200)

        result = FillmoreAdapter().fetch_events()

        assert result.success
        assert result.source_name == 'The Fillmore Charlotte'
        assert len(result.events) == 1

    @responses.activate
    def test_fetch_events_not_found(self):
        """Test a 404 page becomes a failed result."""
        responses.add(responses.GET, PAGE_URL, status=404)

        result = FillmoreAdapter().fetch_events()

        assert not result.success
        assert result.details
