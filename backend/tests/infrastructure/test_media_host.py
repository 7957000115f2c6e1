"""Cloudinary client — request signing, endpoints and error mapping (respx-mocked)."""

import hashlib
from urllib.parse import parse_qs

import httpx
import pytest
import respx

from backstage.core.errors import MediaHostError
from backstage.infrastructure.media_host import (
    EAGER_TRANSFORMATIONS, CloudinaryMediaHost, sign_params,
)

BASE = "https://api.cloudinary.com/v1_1/test-cloud"


@pytest.fixture
def host():
    return CloudinaryMediaHost("test-cloud", "key-123", "shh")


def test_sign_params_sorts_and_skips_unsigned_and_empty():
    params = {"timestamp": 1700000000, "public_id": "site/a", "api_key": "k", "folder": None}
    expected = hashlib.sha1(b"public_id=site/a&timestamp=1700000000shh").hexdigest()
    assert sign_params(params, "shh") == expected


@respx.mock
async def test_destroy_posts_signed_form(host):
    route = respx.post(f"{BASE}/image/destroy").mock(
        return_value=httpx.Response(200, json={"result": "ok"}),
    )

    assert await host.destroy("site/a") == "ok"

    form = parse_qs(route.calls.last.request.content.decode())
    assert form["public_id"] == ["site/a"]
    assert form["api_key"] == ["key-123"]
    signed = {"public_id": "site/a", "invalidate": "true", "timestamp": form["timestamp"][0]}
    assert form["signature"] == [sign_params(signed, "shh")]


@respx.mock
async def test_destroy_raw_resource_uses_raw_endpoint(host):
    respx.post(f"{BASE}/raw/destroy").mock(
        return_value=httpx.Response(200, json={"result": "not found"}),
    )
    assert await host.destroy("site/song", "raw") == "not found"


@respx.mock
async def test_image_upload_requests_eager_formats(host):
    route = respx.post(f"{BASE}/image/upload").mock(
        return_value=httpx.Response(200, json={"public_id": "site/x", "secure_url": "https://x"}),
    )

    result = await host.upload(b"bytes", "site")

    assert result["public_id"] == "site/x"
    body = route.calls.last.request.content
    assert EAGER_TRANSFORMATIONS.encode() in body
    assert b'name="folder"' in body


@respx.mock
async def test_raw_upload_has_no_eager(host):
    route = respx.post(f"{BASE}/raw/upload").mock(
        return_value=httpx.Response(200, json={"public_id": "site/song"}),
    )
    await host.upload(b"audio", None, "raw")
    assert b"eager" not in route.calls.last.request.content


@respx.mock
async def test_usage_uses_basic_auth(host):
    route = respx.get(f"{BASE}/usage").mock(
        return_value=httpx.Response(200, json={"resources": 3}),
    )
    assert await host.usage() == {"resources": 3}
    assert route.calls.last.request.headers["authorization"].startswith("Basic ")


@respx.mock
async def test_http_error_maps_to_media_host_error(host):
    respx.post(f"{BASE}/image/destroy").mock(return_value=httpx.Response(401, text="bad key"))

    with pytest.raises(MediaHostError) as exc_info:
        await host.destroy("site/a")

    assert exc_info.value.operation == "destroy"
    assert exc_info.value.http_status == 502


@respx.mock
async def test_network_error_maps_to_media_host_error(host):
    respx.get(f"{BASE}/usage").mock(side_effect=httpx.ConnectError("down"))
    with pytest.raises(MediaHostError):
        await host.usage()
