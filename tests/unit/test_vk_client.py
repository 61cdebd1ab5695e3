import json

import httpx
import pytest

from tests.vk_payloads import form_params
from vkbridge.vk.client import USER_FIELDS, VkApiClient, VkUser
from vkbridge.vk.exceptions import PlatformApiError
from vkbridge.vk.messages import IncomingMessage
from vkbridge.vk.outgoing import build_service_payload

MESSAGE = IncomingMessage(text="hi", sender=11, recipient=2000000001)


def _client(settings, handler) -> VkApiClient:
    http_client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return VkApiClient(settings, http_client=http_client)


@pytest.mark.asyncio
async def test_send_request_appends_auth_parameters(settings) -> None:
    captured: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        captured.append(request)
        return httpx.Response(200, json={"response": 99})

    client = _client(settings, handler)
    result = await client.send_request("messages.send", {"peer_id": 2, "message": "привет"})

    assert result == {"response": 99}
    request = captured[0]
    assert request.method == "POST"
    assert str(request.url) == "https://api.vk.test/method/messages.send"
    params = form_params(request)
    assert params["peer_id"] == "2"
    assert params["message"] == "привет"
    assert params["access_token"] == "test-access-token"
    assert params["v"] == "5.131"
    assert params["lang"] == "ru"


@pytest.mark.asyncio
async def test_send_payload_adds_random_id(settings) -> None:
    captured: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        captured.append(request)
        return httpx.Response(200, json={"response": 1})

    client = _client(settings, handler)
    await client.send_payload({"peer_id": 2, "message": "x"})
    await client.send_payload({"peer_id": 2, "message": "x", "random_id": 7})

    assert str(captured[0].url).endswith("/messages.send")
    assert form_params(captured[0])["random_id"].isdigit()
    assert form_params(captured[1])["random_id"] == "7"


@pytest.mark.asyncio
async def test_structured_parameters_are_sent_as_json(settings) -> None:
    captured: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        captured.append(request)
        return httpx.Response(200, json={"response": 1})

    payload = build_service_payload(
        "hi",
        MESSAGE,
        {
            "content_source": {"type": "message", "owner_id": 1, "title": "ответ"},
            "forward_messages": [10, 11],
            "dont_parse_links": True,
            "disable_mentions": False,
            "sticker_id": None,
        },
    )
    await _client(settings, handler).send_payload(payload)

    params = form_params(captured[0])
    assert json.loads(params["content_source"]) == {
        "type": "message",
        "owner_id": 1,
        "title": "ответ",
    }
    assert "ответ" in params["content_source"]
    assert params["forward_messages"] == "10,11"
    assert params["dont_parse_links"] == "1"
    assert params["disable_mentions"] == "0"
    assert "sticker_id" not in params
    assert params["peer_id"] == "2000000001"
    assert params["message"] == "hi"


@pytest.mark.asyncio
async def test_list_of_mappings_is_sent_as_json(settings) -> None:
    captured: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        captured.append(request)
        return httpx.Response(200, json={"response": 1})

    forward = [{"peer_id": 2, "conversation_message_ids": [5]}]
    await _client(settings, handler).send_request("messages.send", {"forward": forward})

    assert json.loads(form_params(captured[0])["forward"]) == forward


@pytest.mark.asyncio
async def test_non_200_raises_platform_error(settings) -> None:
    client = _client(settings, lambda request: httpx.Response(502, text="bad gateway"))

    with pytest.raises(PlatformApiError) as excinfo:
        await client.send_request("messages.send", {})

    assert excinfo.value.status_code == 502
    assert excinfo.value.code == 502
    assert excinfo.value.endpoint == "messages.send"


@pytest.mark.asyncio
async def test_error_envelope_raises_platform_error(settings) -> None:
    body = {"error": {"error_code": 901, "error_msg": "Can't send messages without permission"}}
    client = _client(settings, lambda request: httpx.Response(200, json=body))

    with pytest.raises(PlatformApiError) as excinfo:
        await client.send_request("messages.send", {})

    assert excinfo.value.status_code == 200
    assert excinfo.value.error_code == 901
    assert excinfo.value.code == 901
    assert "permission" in excinfo.value.error_msg


@pytest.mark.asyncio
async def test_transport_failure_raises_platform_error(settings) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    client = _client(settings, handler)

    with pytest.raises(PlatformApiError) as excinfo:
        await client.send_request("users.get", {})

    assert excinfo.value.status_code == 0
    assert isinstance(excinfo.value.__cause__, httpx.ConnectError)


@pytest.mark.asyncio
async def test_types_sends_typing_activity(settings) -> None:
    captured: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        captured.append(request)
        return httpx.Response(200, json={"response": 1})

    await _client(settings, handler).types(MESSAGE)

    assert str(captured[0].url).endswith("/messages.setActivity")
    params = form_params(captured[0])
    assert params["user_id"] == "12345"
    assert params["type"] == "typing"
    assert params["peer_id"] == "2000000001"


@pytest.mark.asyncio
async def test_get_user_returns_profile(settings) -> None:
    captured: list[httpx.Request] = []
    record = {"id": 11, "first_name": "Ivan", "last_name": "Petrov", "screen_name": "ivan"}

    def handler(request: httpx.Request) -> httpx.Response:
        captured.append(request)
        return httpx.Response(200, json={"response": [record]})

    user = await _client(settings, handler).get_user(MESSAGE)

    assert user == VkUser(
        id=11,
        first_name="Ivan",
        last_name="Petrov",
        username="ivan",
        info=record,
    )
    params = form_params(captured[0])
    assert params["user_ids"] == "11"
    assert params["fields"] == USER_FIELDS


@pytest.mark.asyncio
async def test_get_user_with_empty_response_raises(settings) -> None:
    client = _client(settings, lambda request: httpx.Response(200, json={"response": []}))
    with pytest.raises(PlatformApiError):
        await client.get_user(MESSAGE)


@pytest.mark.asyncio
async def test_injected_client_is_not_closed(settings) -> None:
    http_client = httpx.AsyncClient(transport=httpx.MockTransport(lambda r: httpx.Response(200)))
    client = VkApiClient(settings, http_client=http_client)
    await client.aclose()
    assert http_client.is_closed is False
    await http_client.aclose()


@pytest.mark.asyncio
@pytest.mark.parametrize("record", [{"first_name": "Ivan"}, "11", None])
async def test_get_user_with_malformed_record_raises(settings, record) -> None:
    client = _client(settings, lambda request: httpx.Response(200, json={"response": [record]}))
    with pytest.raises(PlatformApiError) as excinfo:
        await client.get_user(MESSAGE)
    assert excinfo.value.endpoint == "users.get"
