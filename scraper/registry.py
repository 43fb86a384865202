"""Registry of the configured source adapters."""
import logging
from typing import List, Optional

from config import Settings
from scraper.base import SourceAdapter
from scraper.clttoday import CltTodayAdapter
from scraper.comet_grill import CometGrillScraper
from scraper.eternally_grateful import EternallyGratefulScraper
from scraper.fillmore import FillmoreAdapter
from scraper.ticketmaster import TicketmasterAdapter
from scraper.venue_list import SmokeyJoesScraper, SnugHarborScraper

logger = logging.getLogger(__name__)

ADAPTER_CLASSES = (
    TicketmasterAdapter,
    SmokeyJoesScraper,
    CltTodayAdapter,
    FillmoreAdapter,
    EternallyGratefulScraper,
    CometGrillScraper,
    SnugHarborScraper,
)

SOURCE_NAMES = {cls.SOURCE: cls.SOURCE_NAME for cls in ADAPTER_CLASSES}


def _create(adapter_class, settings: Settings) -> SourceAdapter:
    kwargs = {
        'timeout': settings.timeout_seconds,
        'preferred_venues': settings.preferred_venues,
    }
    if adapter_class is TicketmasterAdapter:
        kwargs['api_key'] = settings.ticketmaster_api_key
    return adapter_class(**kwargs)


def build_adapters(settings: Settings) -> List[SourceAdapter]:
    """
    Instantiate every enabled adapter in display order.

    Args:
        settings: Runtime settings; enabled_sources limits the list when set

    Returns:
        List of adapters
    """
    adapters = []
    for adapter_class in ADAPTER_CLASSES:
        if settings.enabled_sources is not None and adapter_class.SOURCE not in settings.enabled_sources:
            continue
        adapters.append(_create(adapter_class, settings))

    logger.debug(f"Built {len(adapters)} source adapters")
    return adapters


def get_adapter(source: str, settings: Settings) -> Optional[SourceAdapter]:
    """Look up one adapter by its source id."""
    for adapter_class in ADAPTER_CLASSES:
        if adapter_class.SOURCE == source:
            return _create(adapter_class, settings)
    return None
