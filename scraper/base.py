"""Base class shared by all source adapters."""
import logging
from datetime import date
from typing import Any, Iterable, List, Optional

import requests

from config import PREFERRED_VENUES
from processor.models import NormalizedEvent, SourceResult

logger = logging.getLogger(__name__)

USER_AGENT = (
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) "
    "AppleWebKit/537.36 (KHTML, like Gecko) "
    "Chrome/124.0.0.0 Safari/537.36"
)


class SourceConfigurationError(Exception):
    """Raised when a source cannot be queried with the current settings."""


class SourceAdapter:
    """
    Fetches one upstream source and converts it into NormalizedEvents.

    Subclasses set SOURCE, SOURCE_NAME, SOURCE_TYPE and URL and implement
    parse(). parse() must not raise for a single bad record: it skips the
    record and keeps going.
    """

    SOURCE = ''
    SOURCE_NAME = ''
    SOURCE_TYPE: Optional[str] = None
    URL = ''

    def __init__(self, timeout: int = 30, session: Optional[requests.Session] = None,
                 preferred_venues: Optional[Iterable[str]] = None, today: Optional[date] = None):
        """
        Initialize the adapter.

        Args:
            timeout: HTTP request timeout in seconds (default: 30)
            session: Optional requests session to reuse
            preferred_venues: Venue keywords used for match scores
            today: Reference date for upcoming-event checks (default: local date)
        """
        self.timeout = timeout
        self.session = session or requests.Session()
        self.preferred_venues = list(PREFERRED_VENUES if preferred_venues is None else preferred_venues)
        self._today = today

    @property
    def today(self) -> date:
        return self._today or date.today()

    def today_iso(self) -> str:
        return self.today.isoformat()

    def is_upcoming(self, date_str: Optional[str]) -> bool:
        """Dates are zero-padded ISO strings, so string comparison is enough."""
        return bool(date_str) and date_str >= self.today_iso()

    def fetch_raw(self) -> Any:
        """
        Fetch the upstream document.

        Returns:
            Response body text

        Raises:
            requests.RequestException: On transport failure or non-2xx status
        """
        logger.info(f"Fetching {self.SOURCE_NAME} from {self.URL}")
        response = self.session.get(
            self.URL,
            headers={'User-Agent': USER_AGENT},
            timeout=self.timeout
        )
        response.raise_for_status()
        return response.text

    def parse(self, raw: Any) -> List[NormalizedEvent]:
        raise NotImplementedError

    def fetch_events(self) -> SourceResult:
        """
        Fetch and parse the source.

        Transport, decoding and configuration failures are reported on the
        returned SourceResult instead of being raised.

        Returns:
            SourceResult with events or error details
        """
        try:
            raw = self.fetch_raw()
        except (requests.RequestException, ValueError, SourceConfigurationError) as e:
            logger.error(
                f"Failed to fetch {self.SOURCE_NAME}: {e}",
                extra={'source': self.SOURCE, 'error_type': type(e).__name__}
            )
            return SourceResult(
                source=self.SOURCE,
                source_name=self.SOURCE_NAME,
                source_type=self.SOURCE_TYPE,
                error=f"Failed to fetch {self.SOURCE_NAME} events",
                details=str(e)
            )

        events = self.parse(raw)
        logger.info(
            f"Extracted {len(events)} events from {self.SOURCE_NAME}",
            extra={'source': self.SOURCE}
        )
        return SourceResult(
            source=self.SOURCE,
            source_name=self.SOURCE_NAME,
            source_type=self.SOURCE_TYPE,
            events=events
        )
