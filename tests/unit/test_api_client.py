"""
Tests for the token platform API client.
"""

import json

import httpx
import pytest
from eth_account import Account as EthAccount
from eth_account.messages import encode_defunct

from api.client import PlatformClient, TokenCreateRequest
from config import Config
from errors import PlatformAPIError, TokenAddressTimeoutError

BASE_URL = "https://platform.test/meme-api/v1"


def make_client(handler):
    config = Config(api_base_url=BASE_URL, api_requests_per_second=100)
    transport = httpx.MockTransport(handler)
    return PlatformClient(config, client=httpx.AsyncClient(transport=transport))


def ok(data):
    return httpx.Response(200, json={'code': 0, 'msg': 'success', 'data': data})


@pytest.mark.asyncio
async def test_login_signs_nonce_and_stores_token(private_keys):
    signer = EthAccount.from_key(private_keys[0])
    requests = []

    def handler(request):
        requests.append(request)
        body = json.loads(request.content)
        if request.url.path.endswith("/nonce/generate"):
            assert body['accountAddress'] == signer.address
            assert body['verifyType'] == "LOGIN"
            return ok("nonce-123")

        verify = body['verifyInfo']
        message = encode_defunct(text="I am signing my one-time nonce: nonce-123")
        assert EthAccount.recover_message(message, signature=verify['signature']) == signer.address
        assert body['walletName'] == "MetaMask"
        return ok("access-token")

    client = make_client(handler)
    token = await client.login(signer)

    assert token == "access-token"
    assert client.is_authenticated
    assert client.headers['meme-web-access'] == "access-token"
    assert "user_token=access-token" in client.headers['cookie']
    assert len(requests) == 2


@pytest.mark.asyncio
async def test_error_code_raises_platform_error():
    client = make_client(lambda request: httpx.Response(200, json={'code': 1001, 'msg': 'bad nonce', 'data': None}))

    with pytest.raises(PlatformAPIError) as exc_info:
        await client.generate_nonce("0x2222222222222222222222222222222222222222")

    assert exc_info.value.code == 1001
    assert "bad nonce" in str(exc_info.value)


@pytest.mark.asyncio
async def test_http_error_raises_platform_error():
    client = make_client(lambda request: httpx.Response(502, text="bad gateway"))

    with pytest.raises(PlatformAPIError):
        await client.generate_nonce("0x2222222222222222222222222222222222222222")


@pytest.mark.asyncio
async def test_non_object_body_raises_platform_error():
    client = make_client(lambda request: httpx.Response(200, json=["unexpected"]))

    with pytest.raises(PlatformAPIError):
        await client.generate_nonce("0x2222222222222222222222222222222222222222")


@pytest.mark.asyncio
async def test_create_token_without_data_raises_platform_error():
    client = make_client(lambda request: ok(None))
    client.set_access_token("token")

    with pytest.raises(PlatformAPIError):
        await client.create_token(TokenCreateRequest("A", "A", 18, "1", "d", "https://logo"))


@pytest.mark.asyncio
async def test_authenticated_calls_require_login():
    calls = []
    client = make_client(lambda request: calls.append(request) or ok({}))

    with pytest.raises(PlatformAPIError):
        await client.get_user_info()
    with pytest.raises(PlatformAPIError):
        await client.create_token(TokenCreateRequest("A", "A", 18, "1", "d", "https://logo"))

    assert calls == []


@pytest.mark.asyncio
async def test_create_token_sends_payload_and_parses_result():
    seen = {}

    def handler(request):
        seen['body'] = json.loads(request.content)
        seen['headers'] = request.headers
        return ok({'tokenId': 42, 'createArg': '0xabcd', 'signature': '0xef01', 'totalAmount': '1'})

    client = make_client(handler)
    client.set_access_token("token")

    result = await client.create_token(TokenCreateRequest(
        name="Test", symbol="TST", decimals=18, total_supply="1000",
        description="desc", logo_url="https://logo", twitter="https://x.com/test"
    ))

    assert result.token_id == "42"
    assert result.create_arg == "0xabcd"
    assert result.signature == "0xef01"
    assert result.token_address is None
    assert seen['body']['tokenSymbol'] == "TST"
    assert seen['body']['xLink'] == "https://x.com/test"
    assert 'tgLink' not in seen['body']
    assert seen['headers']['meme-web-access'] == "token"


@pytest.mark.asyncio
async def test_upload_image_posts_multipart(tmp_path):
    image = tmp_path / "logo.png"
    image.write_bytes(b"\x89PNG fake")
    seen = {}

    def handler(request):
        seen['content_type'] = request.headers['content-type']
        seen['body'] = request.content
        return ok({'url': "https://cdn.test/logo.png"})

    client = make_client(handler)
    client.set_access_token("token")

    url = await client.upload_image(str(image))

    assert url == "https://cdn.test/logo.png"
    assert seen['content_type'].startswith("multipart/form-data")
    assert b"\x89PNG fake" in seen['body']


@pytest.mark.asyncio
async def test_upload_image_missing_file(tmp_path):
    client = make_client(lambda request: ok({}))
    client.set_access_token("token")

    with pytest.raises(PlatformAPIError):
        await client.upload_image(str(tmp_path / "missing.png"))


@pytest.mark.asyncio
async def test_wait_for_token_address_polls_until_available():
    responses = iter([ok({'id': 1}), ok({'id': 1, 'address': None}),
                      ok({'id': 1, 'address': "0x4444444444444444444444444444444444444444"})])
    client = make_client(lambda request: next(responses))
    client.set_access_token("token")

    address = await client.wait_for_token_address("1", attempts=5, interval=0)

    assert address == "0x4444444444444444444444444444444444444444"


@pytest.mark.asyncio
async def test_wait_for_token_address_times_out():
    client = make_client(lambda request: ok({'id': 1}))
    client.set_access_token("token")

    with pytest.raises(TokenAddressTimeoutError) as exc_info:
        await client.wait_for_token_address("7", attempts=3, interval=0)

    assert exc_info.value.attempts == 3
    assert exc_info.value.token_id == "7"
