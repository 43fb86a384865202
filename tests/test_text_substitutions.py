"""Unit tests for text substitutions."""
from processor.models import NormalizedEvent
from processor.text_substitutions import (
    apply_event_substitutions,
    apply_text_substitutions,
)


class TestApplyTextSubstitutions:
    """Test cases for apply_text_substitutions."""

    def test_replaces_case_insensitively(self):
        """Test any casing of a pattern is replaced."""
        assert apply_text_substitutions('CLTFC vs Orlando') == 'Charlotte FC vs Orlando'
        assert apply_text_substitutions('cltfc watch party') == 'Charlotte FC watch party'
        assert apply_text_substitutions('clt fc') == 'Charlotte FC'

    def test_whole_words_only(self):
        """Test patterns inside longer words are not replaced."""
        assert apply_text_substitutions('cltfcfans meetup') == 'cltfcfans meetup'

    def test_no_match_is_identity(self):
        """Test text without a pattern is returned unchanged."""
        assert apply_text_substitutions('Snug Harbor Punk Night') == 'Snug Harbor Punk Night'

    def test_idempotent(self):
        """Test applying twice equals applying once."""
        for text in ('CLTFC at home', 'Go CLT FC go', 'nothing here', 'cltfc & clt fc'):
            once = apply_text_substitutions(text)
            assert apply_text_substitutions(once) == once

    def test_empty_values(self):
        """Test None and empty input are returned as is."""
        assert apply_text_substitutions(None) is None
        assert apply_text_substitutions('') == ''


class TestApplyEventSubstitutions:
    """Test cases for apply_event_substitutions."""

    def test_event_copy(self):
        """Test event fields are substituted on a copy."""
        event = NormalizedEvent(
            id='1',
            name='CLTFC vs Miami',
            date='2024-10-05',
            venue='Bank of America Stadium',
            source='ticketmaster',
            description=None,
        )

        result = apply_event_substitutions(event)

        assert result.name == 'Charlotte FC vs Miami'
        assert result.description is None
        assert event.name == 'CLTFC vs Miami'

    def test_none_event(self):
        """Test None passes through."""
        assert apply_event_substitutions(None) is None
