"""Event processor for validating, normalizing and merging event data."""
import hashlib
import logging
import re
from dataclasses import replace
from datetime import datetime
from typing import Iterable, List, Optional

from processor.grouping import group_events_by_name
from processor.models import GroupedEvent, NormalizedEvent, SourceResult, flatten_events
from processor.text_substitutions import apply_event_substitutions

logger = logging.getLogger(__name__)

_ALL_CAPS_RUN = re.compile(r'[A-Z]{4,}')
_WORD_START = re.compile(r'\b\w')


def to_title_case(text: str) -> str:
    """
    Title-case strings that are shouting.

    A run of four or more capitals marks the string as all-caps; other
    strings are returned unchanged.
    """
    if not text or not _ALL_CAPS_RUN.search(text):
        return text
    return _WORD_START.sub(lambda m: m.group(0).upper(), text.lower())


class EventProcessor:
    """Processor for validating and merging normalized events."""

    MAX_DESCRIPTION_LENGTH = 2000

    def process_events(self, raw_events: Iterable[NormalizedEvent]) -> List[NormalizedEvent]:
        """
        Validate and normalize events from adapters.

        Records without a name or a parseable ISO date are dropped rather
        than trusted.

        Args:
            raw_events: Events produced by source adapters

        Returns:
            List of normalized events
        """
        raw_events = list(raw_events)
        processed_events = []

        for event in raw_events:
            try:
                processed_event = self._process_single_event(event)
                if processed_event:
                    processed_events.append(processed_event)
            except Exception as e:
                logger.warning(
                    f"Failed to process event '{getattr(event, 'name', None)}': {e}"
                )
                continue

        logger.info(
            f"Processed {len(processed_events)} valid events out of "
            f"{len(raw_events)} total events"
        )
        return processed_events

    def _process_single_event(self, event: NormalizedEvent) -> Optional[NormalizedEvent]:
        if not self._validate_required_fields(event):
            return None

        event = apply_event_substitutions(event)
        description = event.description
        if description and len(description) > self.MAX_DESCRIPTION_LENGTH:
            description = description[:self.MAX_DESCRIPTION_LENGTH]

        return replace(
            event,
            name=to_title_case(event.name.strip()),
            description=description,
            genres=list(event.genres or []),
        )

    def _validate_required_fields(self, event: NormalizedEvent) -> bool:
        """
        Validate that name and date are present and the date parses.

        Args:
            event: Event to validate

        Returns:
            True if valid, False otherwise
        """
        if not event.name or not event.name.strip():
            logger.warning(f"Event from '{event.source}' missing required field: name")
            return False

        if not event.date or not self._is_iso_date(event.date):
            logger.warning(
                f"Event '{event.name}' from '{event.source}' has invalid date: {event.date}"
            )
            return False

        return True

    @staticmethod
    def _is_iso_date(value: str) -> bool:
        try:
            datetime.strptime(value, '%Y-%m-%d')
            return True
        except (TypeError, ValueError):
            return False

    def merge_and_group(self, results: Iterable[SourceResult]) -> List[GroupedEvent]:
        """
        Combine the events of every source into grouped events.

        Failed sources contribute nothing; the remaining events are
        validated, normalized and grouped by name.

        Args:
            results: Source results from the aggregation stage

        Returns:
            List of grouped events
        """
        events = self.process_events(flatten_events(results))
        grouped = group_events_by_name(events)
        logger.info(f"Grouped {len(events)} events into {len(grouped)} cards")
        return grouped

    @staticmethod
    def generate_event_id(source: str, name: str, date: str) -> str:
        """
        Generate a stable identifier for events without an upstream id.

        Args:
            source: Source identifier
            name: Event name
            date: Event date (ISO 8601 format)

        Returns:
            Event ID (source prefix plus SHA256 hash)
        """
        composite = f"{source}|{name}|{date}"
        digest = hashlib.sha256(composite.encode('utf-8')).hexdigest()
        return f"{source}-{digest[:16]}"


def merge_and_group(results: Iterable[SourceResult]) -> List[GroupedEvent]:
    return EventProcessor().merge_and_group(results)
