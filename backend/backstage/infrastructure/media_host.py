"""Media Host Client — Cloudinary uploads, deletions and usage reports.

Invariants:
    - Upload and destroy requests are signed with the API secret (cloudinary.utils.api_sign_request)
    - HTTP and network failures surface as MediaHostError (core/errors.py)
    - Image uploads request exactly three eager derivatives, in thumbnail/small/medium order

Design Decisions:
    - Cloudinary REST endpoints called over httpx, signed with the Cloudinary SDK
      helper: one short-lived AsyncClient per call, no retry layer
    - get_media_host() is a FastAPI dependency so tests swap in a fake host
"""

import logging
import time
from functools import lru_cache
from typing import Any

import httpx
from cloudinary.utils import api_sign_request

from backstage.config import get_settings
from backstage.core.errors import MediaHostError

logger = logging.getLogger(__name__)

API_BASE_URL = "https://api.cloudinary.com/v1_1"
REQUEST_TIMEOUT = 60.0

# thumbnail | small | medium
EAGER_TRANSFORMATIONS = "w_150,h_150,c_fill|w_400,c_limit|w_800,c_limit"

# Never part of the signature
_UNSIGNED_PARAMS = {"file", "api_key", "resource_type", "cloud_name"}


def sign_params(params: dict[str, Any], api_secret: str) -> str:
    """Cloudinary request signature for the given upload/destroy params."""
    to_sign = {
        key: value for key, value in params.items()
        if key not in _UNSIGNED_PARAMS and value not in (None, "")
    }
    return api_sign_request(to_sign, api_secret)


class CloudinaryMediaHost:
    """Async client for the Cloudinary upload and admin APIs."""

    def __init__(
        self,
        cloud_name: str,
        api_key: str,
        api_secret: str,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.cloud_name = cloud_name
        self.api_key = api_key
        self.api_secret = api_secret
        self._transport = transport

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=f"{API_BASE_URL}/{self.cloud_name}",
            timeout=REQUEST_TIMEOUT,
            transport=self._transport,
        )

    def _signed(self, params: dict[str, Any]) -> dict[str, Any]:
        params = {k: v for k, v in params.items() if v not in (None, "")}
        params["timestamp"] = int(time.time())
        params["signature"] = sign_params(params, self.api_secret)
        params["api_key"] = self.api_key
        return params

    async def _request(self, operation: str, method: str, url: str, **kwargs) -> dict[str, Any]:
        try:
            async with self._client() as client:
                response = await client.request(method, url, **kwargs)
                response.raise_for_status()
                return response.json()
        except httpx.HTTPStatusError as e:
            detail = e.response.text[:200]
            logger.error(f"Cloudinary {operation} failed: {e.response.status_code} {detail}")
            raise MediaHostError(operation, f"HTTP {e.response.status_code}")
        except (httpx.HTTPError, ValueError) as e:
            logger.error(f"Cloudinary {operation} failed: {e}")
            raise MediaHostError(operation, str(e))

    async def upload(
        self, data: bytes, folder: str | None = None, resource_type: str = "image",
    ) -> dict[str, Any]:
        params: dict[str, Any] = {"folder": folder}
        if resource_type == "image":
            params["eager"] = EAGER_TRANSFORMATIONS
        return await self._request(
            "upload", "POST", f"/{resource_type}/upload",
            data=self._signed(params),
            files={"file": ("upload", data)},
        )

    async def destroy(self, public_id: str, resource_type: str = "image") -> str | None:
        """Delete a hosted asset; returns the host's result ("ok", "not found", ...)."""
        result = await self._request(
            "destroy", "POST", f"/{resource_type}/destroy",
            data=self._signed({"public_id": public_id, "invalidate": "true"}),
        )
        return result.get("result")

    async def usage(self) -> dict[str, Any]:
        return await self._request(
            "usage", "GET", "/usage", auth=(self.api_key, self.api_secret),
        )


@lru_cache
def get_media_host() -> CloudinaryMediaHost:
    """FastAPI dependency: process-wide media host client."""
    settings = get_settings()
    return CloudinaryMediaHost(
        settings.cloudinary_cloud_name,
        settings.cloudinary_api_key,
        settings.cloudinary_api_secret,
    )
