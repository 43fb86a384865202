"""iCalendar export for a single event."""
from datetime import datetime, timedelta, timezone
from typing import Optional

from processor.models import GroupedEvent, NormalizedEvent

EVENT_DURATION = timedelta(hours=3)
_ICS_FORMAT = '%Y%m%dT%H%M%SZ'


def _escape(value: Optional[str]) -> str:
    """Escape TEXT values per RFC 5545."""
    text = value or ''
    text = text.replace('\\', '\\\\').replace(';', '\\;').replace(',', '\\,')
    return text.replace('\r\n', '\\n').replace('\n', '\\n')


def create_calendar_event(event: NormalizedEvent) -> str:
    """
    Render an event as a single-VEVENT iCalendar document.

    The event starts at midnight UTC on its first date and lasts three hours.

    Args:
        event: Grouped or plain event

    Returns:
        ICS text with CRLF line endings

    Raises:
        ValueError: If the event has no parseable date
    """
    dates = event.dates if isinstance(event, GroupedEvent) and event.dates else []
    first_date = dates[0].date if dates else event.date
    start = datetime.strptime(first_date, '%Y-%m-%d').replace(tzinfo=timezone.utc)
    end = start + EVENT_DURATION

    url = event.ticket_url or (dates[0].ticket_url if dates else None) or ''

    lines = [
        'BEGIN:VCALENDAR',
        'VERSION:2.0',
        'PRODID:-//CLT.show//Events//EN',
        'BEGIN:VEVENT',
        f"UID:{event.id}@clt.show",
        f"DTSTAMP:{datetime.now(timezone.utc).strftime(_ICS_FORMAT)}",
        f"DTSTART:{start.strftime(_ICS_FORMAT)}",
        f"DTEND:{end.strftime(_ICS_FORMAT)}",
        f"SUMMARY:{_escape(event.name)}",
        f"LOCATION:{_escape(event.venue)}",
        f"DESCRIPTION:{_escape(event.description or event.name)}",
        f"URL:{url}",
        'END:VEVENT',
        'END:VCALENDAR',
    ]
    return '\r\n'.join(lines) + '\r\n'
