"""Grouping of recurring events by normalized name."""
import re
from typing import Dict, Iterable, List, Optional

from processor.models import EventDate, GroupedEvent, NormalizedEvent

_PARENTHETICAL = re.compile(r'\s*\([^)]*\)')
_TOUR_SEPARATOR = ' - '

# Slack allowed before a venue-bearing description counts as useful
_VENUE_DESCRIPTION_SLACK = 20


def canonical_name(name: str) -> str:
    """
    Strip parenthetical qualifiers and any " - " suffix from an event name.

    "Concert (Night 1)" -> "Concert"
    "Artist - The Big Tour" -> "Artist"
    """
    base = _PARENTHETICAL.sub('', name or '').strip()
    index = base.find(_TOUR_SEPARATOR)
    if index > 0:
        base = base[:index].strip()
    return base


def grouping_key(name: str) -> str:
    """Lower-cased canonical name used for grouping, hiding and favorites."""
    return canonical_name(name).lower().strip()


def _occurrences(event: NormalizedEvent) -> List[EventDate]:
    dates = getattr(event, 'dates', None)
    if dates:
        return [EventDate(date=d.date, ticket_url=d.ticket_url, id=d.id) for d in dates]
    return [EventDate(date=event.date, ticket_url=event.ticket_url, id=event.id)]


def group_events_by_name(events: Iterable[NormalizedEvent]) -> List[GroupedEvent]:
    """
    Merge events sharing a grouping key into multi-date events.

    The first event seen for a key supplies the scalar fields. Every event
    contributes its date (or, for already grouped input, all of its dates);
    a date already present is not added twice. Dates are sorted ascending.

    Args:
        events: Normalized or grouped events

    Returns:
        Grouped events in first-seen order
    """
    grouped: Dict[str, GroupedEvent] = {}

    for event in events:
        if event is None or not event.name or not event.date:
            continue

        key = grouping_key(event.name)
        if not key:
            continue

        group = grouped.get(key)
        if group is None:
            group = GroupedEvent.from_event(event, canonical_name(event.name))
            grouped[key] = group

        seen = {d.date for d in group.dates}
        for occurrence in _occurrences(event):
            if occurrence.date not in seen:
                seen.add(occurrence.date)
                group.dates.append(occurrence)

    results = list(grouped.values())
    for group in results:
        group.dates.sort(key=lambda d: d.date)
        group.date = group.dates[0].date
    return results


def has_useful_description(event: NormalizedEvent) -> bool:
    """
    Check whether a description adds anything beyond the name or venue.

    Args:
        event: Event to inspect

    Returns:
        False when the description is missing, repeats the normalized name,
        or is essentially the venue string
    """
    if not event.description:
        return False

    description = event.description.strip().lower()
    name = _PARENTHETICAL.sub('', event.name or '').strip().lower()
    venue = (event.venue or '').strip().lower()

    if description == name:
        return False

    if venue and (description == venue or (
            venue in description
            and len(description) < len(venue) + _VENUE_DESCRIPTION_SLACK)):
        return False

    return True


def extract_genres(events: Iterable[NormalizedEvent], excluded: Optional[Iterable[str]] = None) -> List[str]:
    """Sorted unique genres, dropping any containing an excluded substring."""
    excluded = [item.lower() for item in (excluded or [])]
    genres = set()
    for event in events:
        for genre in event.genres or []:
            if not any(item in genre.lower() for item in excluded):
                genres.add(genre)
    return sorted(genres)
