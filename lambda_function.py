"""AWS Lambda handler for the CLT.show events API."""
import json
import logging
import time
from typing import Any, Dict, Optional

from config import Settings, load_settings
from enrichment.youtube import RateLimiter, VideoCache, YouTubeClient, YouTubeError
from processor.aggregator import build_feed, collect_results
from processor.calendar import create_calendar_event
from processor.event_processor import EventProcessor
from processor.models import FilterState, GroupedEvent
from scraper.registry import SOURCE_NAMES, build_adapters, get_adapter

CORS_HEADERS = {
    'Access-Control-Allow-Origin': '*',
    'Access-Control-Allow-Methods': 'GET, OPTIONS',
    'Access-Control-Allow-Headers': 'Content-Type',
}

# Shared by warm invocations of the same container
VIDEO_CACHE = VideoCache()
YOUTUBE_RATE_LIMITER = RateLimiter()


# Configure JSON logging
class JsonFormatter(logging.Formatter):
    """Custom JSON formatter for structured logging."""

    EXTRA_FIELDS = ('source', 'error_type')

    def format(self, record: logging.LogRecord) -> str:
        """Format log record as JSON."""
        log_data = {
            'timestamp': self.formatTime(record),
            'level': record.levelname,
            'message': record.getMessage(),
            'logger': record.name
        }

        for name in self.EXTRA_FIELDS:
            value = getattr(record, name, None)
            if value is not None:
                log_data[name] = value

        if record.exc_info:
            log_data['exception'] = self.formatException(record.exc_info)

        return json.dumps(log_data)


def setup_logging(log_level: str = 'INFO') -> None:
    """
    Configure logging with JSON formatter.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR)
    """
    root_logger = logging.getLogger()

    # Remove existing handlers
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    handler = logging.StreamHandler()
    handler.setFormatter(JsonFormatter())
    root_logger.addHandler(handler)

    root_logger.setLevel(getattr(logging, log_level.upper(), logging.INFO))


def _response(status_code: int, body: Any = None, headers: Optional[Dict[str, str]] = None) -> Dict[str, Any]:
    response_headers = dict(CORS_HEADERS)
    if isinstance(body, str):
        content = body
        response_headers['Content-Type'] = 'text/plain; charset=utf-8'
    elif body is None:
        content = ''
    else:
        content = json.dumps(body)
        response_headers['Content-Type'] = 'application/json'
    response_headers.update(headers or {})
    return {
        'statusCode': status_code,
        'headers': response_headers,
        'body': content
    }


def _request_method(event: Dict[str, Any]) -> str:
    method = event.get('httpMethod')
    if not method:
        method = ((event.get('requestContext') or {}).get('http') or {}).get('method')
    return (method or 'GET').upper()


def _request_path(event: Dict[str, Any]) -> str:
    path = event.get('rawPath') or event.get('path') or '/'
    return '/' + path.strip('/')


def _client_ip(event: Dict[str, Any]) -> str:
    headers = {k.lower(): v for k, v in (event.get('headers') or {}).items()}
    forwarded = (headers.get('x-forwarded-for') or '').split(',')[0].strip()
    if forwarded:
        return forwarded
    if headers.get('x-real-ip'):
        return headers['x-real-ip']
    request_context = event.get('requestContext') or {}
    source_ip = ((request_context.get('http') or {}).get('sourceIp')
                 or (request_context.get('identity') or {}).get('sourceIp'))
    return source_ip or 'unknown'


def _video_client(settings: Settings) -> Optional[YouTubeClient]:
    if not settings.youtube_api_key:
        return None
    return YouTubeClient(settings.youtube_api_key, timeout=settings.timeout_seconds, cache=VIDEO_CACHE)


def handle_source(source: str, settings: Settings) -> Dict[str, Any]:
    """Scrape one source; 404 when unknown, 502 when it fails."""
    adapter = get_adapter(source, settings)
    if adapter is None:
        return _response(404, {
            'error': f"Unknown source '{source}'",
            'sources': sorted(SOURCE_NAMES),
        })

    result = adapter.fetch_events()
    if not result.success:
        return _response(502, {'error': result.error, 'details': result.details})

    return _response(200, {
        'events': [e.to_dict() for e in result.events],
        'source': result.source_name,
        'sourceType': result.source_type,
        'scrapedAt': result.scraped_at,
    })


def handle_feed(params: Dict[str, str], settings: Settings) -> Dict[str, Any]:
    state = FilterState.from_query(params)
    feed = build_feed(
        build_adapters(settings),
        state,
        settings,
        video_client=_video_client(settings)
    )
    return _response(200, feed)


def handle_youtube(params: Dict[str, str], settings: Settings, client_ip: str = 'unknown') -> Dict[str, Any]:
    """
    Search music videos for an artist.

    Args:
        params: Query string with "query"
        settings: Runtime settings carrying the API key
        client_ip: Caller address used for rate limiting

    Returns:
        200 {videos}, 429 over the per-client hourly limit, 500 without key,
        400 without query, 502 upstream failure
    """
    if not YOUTUBE_RATE_LIMITER.allow(client_ip):
        logging.getLogger(__name__).warning(f"Rate limit exceeded for {client_ip}")
        return _response(429, {'error': 'Too many requests. Please try again later.'})

    if not settings.youtube_api_key:
        return _response(500, {'error': 'YouTube API key not configured'})

    query = (params.get('query') or '').strip()
    if not query:
        return _response(400, {'error': 'Query parameter is required'})

    client = _video_client(settings)
    try:
        videos = client.search(query)
    except YouTubeError as e:
        return _response(502, {'error': str(e), 'details': e.details})

    VIDEO_CACHE.set(query, videos)
    return _response(200, {'videos': videos})


def _find_event(events, event_id: str) -> Optional[GroupedEvent]:
    for event in events:
        if event.id == event_id or any(d.id == event_id for d in event.dates):
            return event
    return None


def handle_calendar(params: Dict[str, str], settings: Settings) -> Dict[str, Any]:
    """Export one grouped event as an .ics download."""
    event_id = params.get('id')
    if not event_id:
        return _response(400, {'error': 'id parameter is required'})

    results = collect_results(build_adapters(settings), max_workers=settings.max_workers)
    event = _find_event(EventProcessor().merge_and_group(results), event_id)
    if event is None:
        return _response(404, {'error': f"Event '{event_id}' not found"})

    return _response(200, create_calendar_event(event), headers={
        'Content-Type': 'text/calendar; charset=utf-8',
        'Content-Disposition': f'attachment; filename="{event.id}.ics"',
    })


def lambda_handler(event: Dict[str, Any], context: Any) -> Dict[str, Any]:
    """
    Main Lambda handler function for the events API.

    Args:
        event: API Gateway proxy request
        context: Lambda context object

    Returns:
        Response dict with statusCode, CORS headers and body
    """
    logger = logging.getLogger(__name__)
    start_time = time.time()

    try:
        settings = load_settings()
    except ValueError as e:
        setup_logging()
        logger.error(f"Invalid configuration: {str(e)}", exc_info=True)
        return _response(500, {'error': 'Invalid configuration', 'details': str(e)})

    setup_logging(settings.log_level)

    method = _request_method(event)
    path = _request_path(event)
    params = event.get('queryStringParameters') or {}

    if method == 'OPTIONS':
        return _response(200)

    logger.info(f"Request {method} {path}")

    try:
        if method != 'GET':
            response = _response(405, {'error': f"Method {method} not allowed"})
        elif path == '/api/feed':
            response = handle_feed(params, settings)
        elif path == '/api/youtube':
            response = handle_youtube(params, settings, _client_ip(event))
        elif path == '/api/calendar':
            response = handle_calendar(params, settings)
        elif path.startswith('/api/') and path.count('/') == 2:
            response = handle_source(path[len('/api/'):], settings)
        else:
            response = _response(404, {'error': f"No route for {path}"})
    except Exception as e:
        duration = time.time() - start_time
        logger.error(
            f"Request failed: {str(e)}",
            extra={
                'duration_seconds': round(duration, 2),
                'error_type': type(e).__name__
            },
            exc_info=True
        )
        return _response(500, {'error': 'Internal server error', 'details': str(e)})

    duration = time.time() - start_time
    logger.info(
        f"Request {method} {path} completed with {response['statusCode']}",
        extra={'duration_seconds': round(duration, 2)}
    )
    return response
