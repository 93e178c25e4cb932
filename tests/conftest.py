"""
Shared fixtures: an in-memory Redis and the stores built on it.
"""

from unittest.mock import Mock

import fakeredis
import pytest

from event_radar.health.service import HealthTracker
from event_radar.store.event_store import EventStore


@pytest.fixture
def redis_client():
    return fakeredis.FakeRedis(decode_responses=True)


@pytest.fixture
def store(redis_client):
    return EventStore(redis_client)


@pytest.fixture
def health(redis_client):
    return HealthTracker(redis_client)


@pytest.fixture
def mock_aws_context():
    context = Mock()
    context.aws_request_id = "test-request-id"
    context.log_stream_name = "test-log-stream"
    return context
