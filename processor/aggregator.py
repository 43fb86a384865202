"""Concurrent collection of all sources and the full feed pipeline."""
import logging
from concurrent.futures import ThreadPoolExecutor, as_completed
from datetime import date, datetime, timezone
from typing import Any, Dict, List, Optional, Sequence

from config import Settings, TRAY_EXCLUDED_GENRES
from enrichment.youtube import enrich_events
from processor.event_filter import EventFilter
from processor.event_processor import EventProcessor
from processor.grouping import extract_genres
from processor.models import FilterState, SourceResult, flatten_events

logger = logging.getLogger(__name__)


def _fetch(adapter) -> SourceResult:
    try:
        return adapter.fetch_events()
    except Exception as e:
        logger.error(
            f"Unexpected error while scraping {adapter.SOURCE_NAME}: {e}",
            extra={'source': adapter.SOURCE, 'error_type': type(e).__name__},
            exc_info=True
        )
        return SourceResult(
            source=adapter.SOURCE,
            source_name=adapter.SOURCE_NAME,
            source_type=adapter.SOURCE_TYPE,
            error=f"Failed to scrape {adapter.SOURCE_NAME} events",
            details=str(e)
        )


def collect_results(adapters: Sequence, max_workers: int = 8) -> List[SourceResult]:
    """
    Fetch every source concurrently and wait for all of them.

    A failing source yields a failed SourceResult and never cancels or
    blocks the others.

    Args:
        adapters: Source adapters
        max_workers: Thread pool size

    Returns:
        Results in adapter order
    """
    if not adapters:
        return []

    results: Dict[int, SourceResult] = {}
    with ThreadPoolExecutor(max_workers=max(1, min(max_workers, len(adapters)))) as executor:
        futures = {
            executor.submit(_fetch, adapter): index
            for index, adapter in enumerate(adapters)
        }
        for future in as_completed(futures):
            results[futures[future]] = future.result()

    ordered = [results[index] for index in range(len(adapters))]
    failed = [result.source for result in ordered if not result.success]
    logger.info(
        f"Collected {sum(len(r.events) for r in ordered)} events from "
        f"{len(ordered) - len(failed)}/{len(ordered)} sources",
        extra={'failed_sources': failed}
    )
    return ordered


def build_feed(adapters: Sequence, state: FilterState, settings: Settings,
               video_client=None, today: Optional[date] = None) -> Dict[str, Any]:
    """
    Run the whole pipeline: collect, normalize, filter, group, sort and enrich.

    Args:
        adapters: Source adapters to query
        state: User filter state
        settings: Runtime settings
        video_client: Optional YouTubeClient for video previews
        today: Reference date for past-event filtering

    Returns:
        Feed dict with grouped events, per-source status and available genres
    """
    results = collect_results(adapters, max_workers=settings.max_workers)

    # Exclusions apply per source record; grouping comes after filtering
    events = EventProcessor().process_events(flatten_events(results))

    event_filter = EventFilter(
        preferred_venues=settings.preferred_venues,
        excluded_genres=settings.excluded_genres,
        keyword_exclusions=settings.keyword_exclusions,
    )
    ordered = event_filter.apply(events, state, today=today)

    # Only events that survive filtering are looked up
    if video_client is not None:
        ordered = enrich_events(ordered, video_client, settings.video_venues)

    return {
        'events': [event.to_dict() for event in ordered],
        'sources': [result.status() for result in results],
        'availableGenres': extract_genres(flatten_events(results), TRAY_EXCLUDED_GENRES),
        'generatedAt': datetime.now(timezone.utc).isoformat(),
    }
