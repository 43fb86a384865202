"""Integration tests for Lambda handler."""
import json
import logging
import os
from unittest.mock import Mock, patch

import pytest
import responses

from enrichment.youtube import SEARCH_URL, RateLimiter
from lambda_function import JsonFormatter, lambda_handler, setup_logging
from processor.models import NormalizedEvent, SourceResult


@pytest.fixture
def mock_env():
    """Set up environment variables for testing."""
    env_vars = {
        'LOG_LEVEL': 'INFO',
        'TIMEOUT_SECONDS': '5',
        'MAX_WORKERS': '4',
        'TICKETMASTER_API_KEY': 'tm-key',
    }
    with patch.dict(os.environ, env_vars):
        os.environ.pop('YOUTUBE_API_KEY', None)
        os.environ.pop('ENABLED_SOURCES', None)
        os.environ.pop('PREFERRED_VENUES', None)
        yield env_vars


@pytest.fixture
def youtube_env(mock_env):
    os.environ['YOUTUBE_API_KEY'] = 'yt-key'
    yield mock_env


@pytest.fixture
def mock_context():
    """Create a mock Lambda context."""
    context = Mock()
    context.function_name = 'test-function'
    context.memory_limit_in_mb = 512
    context.aws_request_id = 'test-request-id'
    return context


def make_request(path, params=None, method='GET'):
    return {
        'rawPath': path,
        'requestContext': {'http': {'method': method}},
        'queryStringParameters': params,
    }


def make_event(name, date, source='fillmore', **kwargs):
    values = {
        'id': f"{source}-{name}-{date}".lower().replace(' ', '-'),
        'venue': 'The Fillmore Charlotte',
        'genres': ['Live Music'],
        'match_score': 80,
    }
    values.update(kwargs)
    return NormalizedEvent(name=name, date=date, source=source, **values)


def stub_adapter(result):
    adapter = Mock()
    adapter.SOURCE = result.source
    adapter.SOURCE_NAME = result.source_name
    adapter.SOURCE_TYPE = result.source_type
    adapter.fetch_events.return_value = result
    return adapter


FILLMORE_RESULT = SourceResult(
    source='fillmore',
    source_name='The Fillmore Charlotte',
    source_type='venue',
    events=[
        make_event('Goose (Night 1)', '2099-11-01'),
        make_event('Goose (Night 2)', '2099-11-02'),
        make_event('Comedy Hour', '2099-10-15', genres=['Comedy']),
    ],
)


class TestLambdaHandler:
    """Test cases for Lambda handler."""

    def test_options_preflight(self, mock_env, mock_context):
        """Test CORS preflight on any path."""
        response = lambda_handler(make_request('/api/anything', method='OPTIONS'), mock_context)

        assert response['statusCode'] == 200
        assert response['body'] == ''
        assert response['headers']['Access-Control-Allow-Origin'] == '*'

    def test_rest_api_request_format(self, mock_env, mock_context):
        """Test the REST API v1 path and method fields."""
        response = lambda_handler({'path': '/api/nowhere/else', 'httpMethod': 'GET'}, mock_context)

        assert response['statusCode'] == 404

    def test_method_not_allowed(self, mock_env, mock_context):
        """Test non-GET methods."""
        response = lambda_handler(make_request('/api/feed', method='POST'), mock_context)

        assert response['statusCode'] == 405

    @patch('lambda_function.get_adapter')
    def test_single_source_success(self, mock_get_adapter, mock_env, mock_context):
        """Test one source returns its events."""
        mock_get_adapter.return_value = stub_adapter(FILLMORE_RESULT)

        response = lambda_handler(make_request('/api/fillmore'), mock_context)

        assert response['statusCode'] == 200
        assert response['headers']['Content-Type'] == 'application/json'
        body = json.loads(response['body'])
        assert body['source'] == 'The Fillmore Charlotte'
        assert body['sourceType'] == 'venue'
        assert len(body['events']) == 3
        assert body['events'][0]['name'] == 'Goose (Night 1)'
        assert body['scrapedAt']
        assert mock_get_adapter.call_args[0][0] == 'fillmore'

    @patch('lambda_function.get_adapter')
    def test_single_source_failure(self, mock_get_adapter, mock_env, mock_context):
        """Test an upstream failure maps to 502."""
        mock_get_adapter.return_value = stub_adapter(SourceResult(
            source='clttoday',
            source_name='CLTtoday',
            error='Failed to fetch CLTtoday events',
            details='503 Server Error',
        ))

        response = lambda_handler(make_request('/api/clttoday'), mock_context)

        assert response['statusCode'] == 502
        assert json.loads(response['body']) == {
            'error': 'Failed to fetch CLTtoday events',
            'details': '503 Server Error',
        }

    def test_unknown_source(self, mock_env, mock_context):
        """Test unknown source ids return 404."""
        response = lambda_handler(make_request('/api/not-a-source'), mock_context)

        assert response['statusCode'] == 404

    @patch('lambda_function.build_adapters')
    def test_feed(self, mock_build_adapters, mock_env, mock_context):
        """Test the feed applies query-string filters."""
        mock_build_adapters.return_value = [
            stub_adapter(FILLMORE_RESULT),
            stub_adapter(SourceResult(source='snugharbor', source_name='Snug Harbor', error='Failed')),
        ]

        response = lambda_handler(
            make_request('/api/feed', {'hidden': 'Comedy Hour', 'sort': 'date'}),
            mock_context
        )

        assert response['statusCode'] == 200
        body = json.loads(response['body'])
        assert [e['name'] for e in body['events']] == ['Goose']
        assert [d['date'] for d in body['events'][0]['dates']] == ['2099-11-01', '2099-11-02']
        assert [s['success'] for s in body['sources']] == [True, False]
        assert body['availableGenres'] == ['Comedy', 'Live Music']

    @patch('lambda_function.build_feed')
    @patch('lambda_function.build_adapters')
    def test_unexpected_error(self, mock_build_adapters, mock_build_feed, mock_env, mock_context):
        """Test any unexpected exception becomes a 500 response."""
        mock_build_adapters.return_value = []
        mock_build_feed.side_effect = RuntimeError('kaboom')

        response = lambda_handler(make_request('/api/feed'), mock_context)

        assert response['statusCode'] == 500
        body = json.loads(response['body'])
        assert body['error'] == 'Internal server error'
        assert body['details'] == 'kaboom'
        assert response['headers']['Access-Control-Allow-Origin'] == '*'

    def test_youtube_without_key(self, mock_env, mock_context):
        """Test missing API key returns 500."""
        response = lambda_handler(make_request('/api/youtube', {'query': 'Goose'}), mock_context)

        assert response['statusCode'] == 500

    def test_youtube_without_query(self, youtube_env, mock_context):
        """Test missing query returns 400."""
        response = lambda_handler(make_request('/api/youtube'), mock_context)

        assert response['statusCode'] == 400
        assert json.loads(response['body']) == {'error': 'Query parameter is required'}

    @responses.activate
    def test_youtube_success(self, youtube_env, mock_context):
        """Test video search results."""
        responses.add(
            responses.GET,
            SEARCH_URL,
            json={'items': [{'id': {'videoId': 'abc123xyz'}, 'snippet': {'title': 'Arcadia'}}]},
            status=200
        )

        response = lambda_handler(make_request('/api/youtube', {'query': 'Goose'}), mock_context)

        assert response['statusCode'] == 200
        assert json.loads(response['body']) == {
            'videos': [{
                'title': 'Arcadia',
                'url': 'https://youtube.com/watch?v=abc123xyz',
                'embedUrl': 'https://www.youtube.com/embed/abc123xyz',
            }]
        }

    def test_youtube_rate_limited_per_client(self, youtube_env, mock_context):
        """Test callers over the hourly limit get 429 before any other check."""
        first = make_request('/api/youtube')
        first['headers'] = {'X-Forwarded-For': '203.0.113.7, 10.0.0.1'}
        other = make_request('/api/youtube')
        other['requestContext']['http']['sourceIp'] = '198.51.100.2'

        with patch('lambda_function.YOUTUBE_RATE_LIMITER', RateLimiter(max_requests=1)):
            assert lambda_handler(first, mock_context)['statusCode'] == 400
            limited = lambda_handler(first, mock_context)
            assert lambda_handler(other, mock_context)['statusCode'] == 400

        assert limited['statusCode'] == 429
        assert json.loads(limited['body']) == {'error': 'Too many requests. Please try again later.'}

    @responses.activate
    def test_youtube_upstream_failure(self, youtube_env, mock_context):
        """Test upstream API errors map to 502."""
        responses.add(
            responses.GET,
            SEARCH_URL,
            json={'error': {'message': 'API key not valid'}},
            status=400
        )

        response = lambda_handler(make_request('/api/youtube', {'query': 'Goose'}), mock_context)

        assert response['statusCode'] == 502
        assert json.loads(response['body'])['error'] == 'API key not valid'

    @patch('lambda_function.build_adapters')
    def test_calendar_export(self, mock_build_adapters, mock_env, mock_context):
        """Test ICS download for a grouped event, found by any date id."""
        mock_build_adapters.return_value = [stub_adapter(FILLMORE_RESULT)]

        response = lambda_handler(
            make_request('/api/calendar', {'id': 'fillmore-goose-(night-2)-2099-11-02'}),
            mock_context
        )

        assert response['statusCode'] == 200
        assert response['headers']['Content-Type'].startswith('text/calendar')
        assert 'DTSTART:20991101T000000Z' in response['body']
        assert 'SUMMARY:Goose' in response['body']

    @patch('lambda_function.build_adapters')
    def test_calendar_not_found(self, mock_build_adapters, mock_env, mock_context):
        """Test unknown event ids return 404."""
        mock_build_adapters.return_value = [stub_adapter(FILLMORE_RESULT)]

        response = lambda_handler(make_request('/api/calendar', {'id': 'missing'}), mock_context)

        assert response['statusCode'] == 404

    def test_calendar_without_id(self, mock_env, mock_context):
        """Test a missing id is rejected."""
        response = lambda_handler(make_request('/api/calendar'), mock_context)

        assert response['statusCode'] == 400

    def test_invalid_configuration(self, mock_env, mock_context):
        """Test malformed numeric settings return 500 instead of raising."""
        os.environ['TIMEOUT_SECONDS'] = 'soon'

        response = lambda_handler(make_request('/api/feed'), mock_context)

        assert response['statusCode'] == 500
        assert json.loads(response['body'])['error'] == 'Invalid configuration'


class TestSetupLogging:
    """Test cases for logging setup."""

    def test_setup_logging_default_level(self):
        """Test logging setup with default INFO level."""
        setup_logging()
        assert logging.getLogger().level == logging.INFO

    def test_setup_logging_debug_level(self):
        """Test logging setup with DEBUG level."""
        setup_logging('DEBUG')
        assert logging.getLogger().level == logging.DEBUG

    def test_setup_logging_invalid_level(self):
        """Test unknown levels fall back to INFO."""
        setup_logging('LOUD')
        assert logging.getLogger().level == logging.INFO

    def test_json_formatter_includes_source(self):
        """Test the formatter emits JSON with the source extra."""
        record = logging.LogRecord(
            name='scraper.fillmore', level=logging.ERROR, pathname=__file__, lineno=1,
            msg='Failed to fetch %s', args=('Fillmore',), exc_info=None
        )
        record.source = 'fillmore'

        data = json.loads(JsonFormatter().format(record))

        assert data['level'] == 'ERROR'
        assert data['message'] == 'Failed to fetch Fillmore'
        assert data['logger'] == 'scraper.fillmore'
        assert data['source'] == 'fillmore'
        assert 'exception' not in data
