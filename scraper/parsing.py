"""Shared text, date and structured-data helpers for source adapters."""
import json
import logging
import re
from datetime import date, datetime
from typing import Any, Dict, List, Optional, Tuple

from bs4 import BeautifulSoup

logger = logging.getLogger(__name__)

HTML_ENTITIES = {
    '&#39;': "'",
    '&quot;': '"',
    '&amp;': '&',
    '&lt;': '<',
    '&gt;': '>',
    '&nbsp;': ' ',
    '&#x27;': "'",
    '&#x2F;': '/',
}

_ENTITY = re.compile(r'&#?\w+;')
_TAG = re.compile(r'<[^>]+>')
_WHITESPACE = re.compile(r'\s+')

_MONTHS = {
    name: index
    for index, names in enumerate((
        ('january', 'jan'), ('february', 'feb'), ('march', 'mar'),
        ('april', 'apr'), ('may',), ('june', 'jun'), ('july', 'jul'),
        ('august', 'aug'), ('september', 'sep', 'sept'),
        ('october', 'oct'), ('november', 'nov'), ('december', 'dec'),
    ), start=1)
    for name in names
}

_ISO_PREFIX = re.compile(r'^\s*(\d{4})-(\d{2})-(\d{2})')
_ISO_DATE = re.compile(r'^(\d{4})-(\d{2})-(\d{2})$')
_ISO_DATETIME = re.compile(r'^\s*(\d{4}-\d{2}-\d{2})(?:[T ](\d{2}):(\d{2}))?')
_MONTH_DAY_YEAR = re.compile(r'([A-Za-z]+)\.?\s+(\d{1,2})(?:st|nd|rd|th)?,?\s+(\d{4})')
_MONTH_DAY = re.compile(r'([A-Za-z]+)\.?\s+(\d{1,2})(?:st|nd|rd|th)?\b')
_NUMERIC_DATE = re.compile(r'\b(\d{1,2})/(\d{1,2})/(\d{4})\b')

_FALLBACK_FORMATS = (
    '%Y/%m/%d',
    '%m-%d-%Y',
    '%d %B %Y',
    '%d %b %Y',
    '%A %B %d %Y',
    '%a %b %d %Y',
)

_TIME_12H = re.compile(r'\b(\d{1,2})(?::(\d{2}))?\s*([ap])\.?m\.?', re.IGNORECASE)
_TIME_24H = re.compile(r'\b([01]?\d|2[0-3]):([0-5]\d)\b')


def decode_html_entities(text: Optional[str]) -> Optional[str]:
    """
    Decode the small fixed table of HTML entities seen on venue sites.

    Unknown entities are left untouched.
    """
    if not text:
        return text
    return _ENTITY.sub(lambda m: HTML_ENTITIES.get(m.group(0), m.group(0)), text)


def strip_tags(text: Optional[str]) -> str:
    if not text:
        return ''
    return _WHITESPACE.sub(' ', _TAG.sub('', text)).strip()


def clean_text(text: Optional[str]) -> str:
    """Collapse whitespace and decode entities."""
    if not text:
        return ''
    return decode_html_entities(_WHITESPACE.sub(' ', text).strip())


def _build_date(year: int, month: int, day: int) -> Optional[date]:
    try:
        return date(year, month, day)
    except ValueError:
        return None


def is_iso_date(text: Optional[str]) -> bool:
    """True for an exact YYYY-MM-DD string naming a real calendar day."""
    match = _ISO_DATE.match(text or '')
    return bool(match) and _build_date(*(int(part) for part in match.groups())) is not None


def parse_date_text(text: Optional[str], today: Optional[date] = None) -> Optional[str]:
    """
    Parse a display date into an ISO calendar date.

    Accepts an ISO prefix ("2024-10-31T20:00"), month-name dates with a year
    ("October 31, 2024", "Oct 31 2024"), month-name dates without a year
    ("Wednesday, October 8", "Oct 8"), numeric US dates ("10/31/2024") and a
    few generic fallback formats. A date without a year is placed in the
    current year, or the next one if it has already passed.

    Args:
        text: Raw date text
        today: Reference date for year inference

    Returns:
        Date as YYYY-MM-DD or None if nothing parses
    """
    if not text:
        return None

    text = clean_text(text)
    today = today or date.today()

    match = _ISO_PREFIX.match(text)
    if match:
        parsed = _build_date(*(int(part) for part in match.groups()))
        return parsed.isoformat() if parsed else None

    for match in _MONTH_DAY_YEAR.finditer(text):
        month = _MONTHS.get(match.group(1).lower())
        if not month:
            continue
        parsed = _build_date(int(match.group(3)), month, int(match.group(2)))
        if parsed:
            return parsed.isoformat()

    match = _NUMERIC_DATE.search(text)
    if match:
        parsed = _build_date(int(match.group(3)), int(match.group(1)), int(match.group(2)))
        if parsed:
            return parsed.isoformat()

    for match in _MONTH_DAY.finditer(text):
        month = _MONTHS.get(match.group(1).lower())
        if not month:
            continue
        parsed = _build_date(today.year, month, int(match.group(2)))
        if parsed and parsed < today:
            parsed = _build_date(today.year + 1, month, int(match.group(2)))
        if parsed:
            return parsed.isoformat()

    compact = text.replace(',', '')
    for fmt in _FALLBACK_FORMATS:
        try:
            return datetime.strptime(compact, fmt).date().isoformat()
        except ValueError:
            continue

    return None


def parse_time_text(text: Optional[str]) -> Optional[str]:
    """
    Normalize a clock time to 24-hour HH:MM.

    Args:
        text: Time text such as "7:30 PM", "8pm" or "19:30"

    Returns:
        HH:MM or None if no time is present
    """
    if not text:
        return None

    match = _TIME_12H.search(text)
    if match:
        hour = int(match.group(1))
        minute = int(match.group(2) or 0)
        meridiem = match.group(3).lower()
        if hour > 12 or minute > 59:
            return None
        if meridiem == 'p' and hour != 12:
            hour += 12
        if meridiem == 'a' and hour == 12:
            hour = 0
        return f"{hour:02d}:{minute:02d}"

    match = _TIME_24H.search(text)
    if match:
        return f"{int(match.group(1)):02d}:{match.group(2)}"

    return None


def slugify_id(*parts: str) -> str:
    """Build a lower-case hyphenated id from name/date parts."""
    raw = '-'.join(part for part in parts if part).lower()
    raw = re.sub(r'\s+', '-', raw)
    raw = re.sub(r'[^a-z0-9-]', '', raw)
    return re.sub(r'-{2,}', '-', raw).strip('-')


def extract_json_ld(soup: BeautifulSoup) -> List[Dict[str, Any]]:
    """
    Decode every JSON-LD block on a page.

    Each block is decoded on its own; a malformed block is logged and
    skipped. Top-level lists and "@graph" containers are flattened.

    Args:
        soup: Parsed page

    Returns:
        List of JSON-LD objects
    """
    items = []
    for script in soup.find_all('script', attrs={'type': 'application/ld+json'}):
        raw = script.string or script.get_text()
        try:
            data = json.loads(raw)
        except (TypeError, ValueError) as e:
            logger.warning(f"Skipping malformed JSON-LD block: {e}")
            continue

        entries = data if isinstance(data, list) else [data]
        for entry in entries:
            if not isinstance(entry, dict):
                continue
            graph = entry.get('@graph')
            if isinstance(graph, list):
                items.extend(item for item in graph if isinstance(item, dict))
            else:
                items.append(entry)
    return items


def json_ld_types(item: Dict[str, Any]) -> List[str]:
    value = item.get('@type')
    if isinstance(value, list):
        return [str(v) for v in value]
    return [str(value)] if value else []


def split_iso_datetime(value: Optional[str]) -> Tuple[Optional[str], Optional[str]]:
    """
    Split an ISO 8601 timestamp into its date and HH:MM parts as written.

    No time-zone conversion is applied: "2024-11-01T23:30:00-04:00" is
    ("2024-11-01", "23:30").
    """
    match = _ISO_DATETIME.match(str(value or ''))
    if not match or not _build_date(*(int(p) for p in match.group(1).split('-'))):
        return None, None
    time_str = f"{match.group(2)}:{match.group(3)}" if match.group(2) else None
    return match.group(1), time_str
