"""Shared fixtures for booking backend tests."""

import httpx
import pytest
import pytest_asyncio

from helpers import FEED_URL, ICS_FEED, FakeGateway, RecordingNotifier
from villapura.api.main import create_app
from villapura.config import CalendarFeedSettings, Settings, StripeSettings
from villapura.container import build_container
from villapura.services.ledger import InMemoryBookingRepository
from villapura.utils.dates import DateNormalizer


# =============================================================================
# Fixtures
# =============================================================================


@pytest.fixture
def normalizer():
    return DateNormalizer(offset_hours=8)


@pytest.fixture
def settings():
    settings = Settings()
    settings._calendar = CalendarFeedSettings(url=FEED_URL, sync_interval_seconds=1800)
    settings._stripe = StripeSettings(currency="aud")
    return settings


@pytest.fixture
def repository():
    return InMemoryBookingRepository()


@pytest.fixture
def gateway():
    return FakeGateway()


@pytest.fixture
def notifier():
    return RecordingNotifier()


@pytest.fixture
def feed_responses():
    """Queue of responses served to the calendar feed client."""
    return [httpx.Response(200, text=ICS_FEED)]


@pytest.fixture
def feed_client(feed_responses):
    def handler(request: httpx.Request) -> httpx.Response:
        response = feed_responses.pop(0) if len(feed_responses) > 1 else feed_responses[0]
        if isinstance(response, Exception):
            raise response
        return response

    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


@pytest.fixture
def container(settings, repository, gateway, notifier, feed_client):
    return build_container(
        settings,
        repository=repository,
        gateway=gateway,
        post_commit_hooks=[notifier],
        feed_client=feed_client,
    )


@pytest.fixture
def app(settings, container):
    return create_app(settings, container=container)


@pytest_asyncio.fixture
async def client(app, container):
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as client:
        yield client
    await container.booking_service.drain()

