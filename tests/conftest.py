import os

import httpx
import pytest

# Ensure settings are resolved from test env before app modules import.
os.environ["ENVIRONMENT"] = "test"
os.environ["LOG_LEVEL"] = "DEBUG"
os.environ["VK_SECRET_KEY"] = "test-secret"
os.environ["VK_GROUP_ID"] = "12345"
os.environ["VK_CONFIRMATION"] = "a1b2c3d4"
os.environ["VK_ACCESS_TOKEN"] = "test-access-token"
os.environ["VK_API_VERSION"] = "5.131"
os.environ["VK_LANG"] = "ru"
os.environ["VK_API_BASE"] = "https://api.vk.test/method"
os.environ.pop("ALLOW_INSECURE_VK_WEBHOOK", None)


class RecordingRuntime:
    """Runtime double that records what the webhook hands over."""

    def __init__(self) -> None:
        self.events = []
        self.messages = []

    def handle_event(self, event, driver) -> None:
        self.events.append(event)

    def handle_message(self, message, driver) -> None:
        self.messages.append(message)


@pytest.fixture(autouse=True)
def reset_settings_cache():
    from vkbridge.core.config import get_settings

    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def settings():
    from vkbridge.core.config import get_settings

    return get_settings()


@pytest.fixture
def sent_requests() -> list[httpx.Request]:
    return []


@pytest.fixture
def vk_api_response() -> dict[str, object]:
    """Mutable canned body returned by the fake VK API."""
    return {"status_code": 200, "json": {"response": 1}}


@pytest.fixture
def vk_transport(sent_requests, vk_api_response) -> httpx.MockTransport:
    def handler(request: httpx.Request) -> httpx.Response:
        sent_requests.append(request)
        return httpx.Response(vk_api_response["status_code"], json=vk_api_response["json"])

    return httpx.MockTransport(handler)


@pytest.fixture
def runtime() -> RecordingRuntime:
    return RecordingRuntime()


@pytest.fixture
def client(runtime, vk_transport):
    from fastapi.testclient import TestClient

    from vkbridge.main import create_app

    http_client = httpx.AsyncClient(transport=vk_transport)
    app = create_app(runtime=runtime, http_client=http_client)
    with TestClient(app) as test_client:
        yield test_client
