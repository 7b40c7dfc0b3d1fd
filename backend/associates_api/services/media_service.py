"""
Associates Backend — Media Host Service
========================================

What:  Upload/delete proxy to the hosted media service (Cloudinary).
Why:   Images for blog posts, team photos and the gallery live on the media
       host's CDN; this backend only relays them so the API secret never
       reaches the browser.
How:   Uploads are validated (non-empty, size limit), turned into a
       `data:<mime>;base64,<payload>` URI and POSTed to the host's upload
       API with resource_type=auto and a q_<quality> transformation.
       Deletes POST the public_id to the destroy API. Every call is signed
       with the API secret and sent through one shared httpx.AsyncClient.

Resilience Strategy:
    Transport failures (connect errors, timeouts) are retried by tenacity
    with exponential backoff and jitter. HTTP error responses are NOT retried:
    a 4xx from the host will not change on a second attempt.

Request Signing:
    signature = sha1("k1=v1&k2=v2..." + api_secret), parameters sorted by key,
    excluding file, api_key, resource_type and cloud_name.
"""

import base64
import hashlib
import logging
import time
import uuid
from typing import Any, Dict, Optional

import httpx
from tenacity import (
    AsyncRetrying,
    before_sleep_log,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential_jitter,
)

from associates_api.config import Settings
from associates_api.exceptions import MediaHostError, ValidationError

logger = logging.getLogger(__name__)

# Never part of the signed string
UNSIGNED_PARAMS = frozenset({"file", "api_key", "resource_type", "cloud_name"})


def check_upload_size(size: Optional[int], max_size: int) -> None:
    """
    Reject an upload by its declared size, before its bytes are read.

    `size` is UploadFile.size, filled in by the multipart parser; None means
    unknown and is left to validate_upload() after reading.
    """
    if size is None or size <= max_size:
        return
    max_mb = max_size / (1024 * 1024)
    raise ValidationError(
        message=(
            f"File size ({size / (1024 * 1024):.1f}MB) "
            f"exceeds maximum of {max_mb:.0f}MB."
        ),
        field="my_file",
        context={"max_size_mb": max_mb, "actual_size": size},
    )


def validate_upload(content: bytes, max_size: int) -> None:
    """
    Reject empty and oversized uploads before anything is sent upstream.

    Raises:
        ValidationError with a human-readable size limit message
    """
    if not content:
        raise ValidationError(message="Uploaded file is empty.", field="my_file")

    check_upload_size(len(content), max_size)


def _host_error_message(payload: Any) -> str:
    # Usually {"error": {"message": "..."}}, but proxies and outages return anything
    if not isinstance(payload, dict):
        return ""
    error = payload.get("error")
    if isinstance(error, dict):
        return str(error.get("message", ""))
    if isinstance(error, str):
        return error
    return ""


def build_data_uri(content: bytes, mime_type: Optional[str]) -> str:
    """Encode raw upload bytes as a base64 data URI the media host accepts."""
    encoded = base64.b64encode(content).decode("ascii")
    return f"data:{mime_type or 'application/octet-stream'};base64,{encoded}"


class MediaHostClient:
    """
    Signed client for the media host's upload and destroy APIs.

    Created once in the lifespan handler (from_settings) and closed on
    shutdown. Tests pass their own http_client built on httpx.MockTransport.
    """

    def __init__(
        self,
        cloud_name: str,
        api_key: str,
        api_secret: str,
        *,
        api_base: str = "https://api.cloudinary.com/v1_1",
        upload_quality: int = 50,
        timeout: float = 60.0,
        retry_attempts: int = 3,
        retry_min_wait: float = 1.0,
        retry_max_wait: float = 10.0,
        http_client: Optional[httpx.AsyncClient] = None,
        clock=time.time,
    ):
        self.cloud_name = cloud_name
        self.api_key = api_key
        self._api_secret = api_secret
        self.api_base = api_base.rstrip("/")
        self.upload_quality = upload_quality
        self.retry_attempts = retry_attempts
        self.retry_min_wait = retry_min_wait
        self.retry_max_wait = retry_max_wait
        self._http = http_client or httpx.AsyncClient(timeout=timeout)
        self._clock = clock

    @classmethod
    def from_settings(cls, settings: Settings) -> "MediaHostClient":
        return cls(
            cloud_name=settings.cloudinary_cloud_name,
            api_key=settings.cloudinary_api_key,
            api_secret=settings.cloudinary_api_secret,
            api_base=settings.cloudinary_api_base,
            upload_quality=settings.media_upload_quality,
            timeout=settings.media_timeout_seconds,
            retry_attempts=settings.retry_max_attempts,
            retry_min_wait=settings.retry_min_wait,
            retry_max_wait=settings.retry_max_wait,
        )

    @property
    def configured(self) -> bool:
        return bool(self.cloud_name and self.api_key and self._api_secret)

    def sign(self, params: Dict[str, Any]) -> str:
        to_sign = "&".join(
            f"{key}={params[key]}"
            for key in sorted(params)
            if key not in UNSIGNED_PARAMS and params[key] not in (None, "")
        )
        return hashlib.sha1((to_sign + self._api_secret).encode("utf-8")).hexdigest()

    def _signed_form(self, params: Dict[str, Any]) -> Dict[str, Any]:
        form = dict(params)
        form["timestamp"] = int(self._clock())
        form["signature"] = self.sign(form)
        form["api_key"] = self.api_key
        return form

    def _url(self, resource_type: str, action: str) -> str:
        return f"{self.api_base}/{self.cloud_name}/{resource_type}/{action}"

    async def upload(self, data_uri: str) -> Dict[str, Any]:
        """
        Store an asset on the media host.

        Returns:
            The host's JSON response (public_id, secure_url, format, bytes, ...)

        Raises:
            MediaHostError: not configured, rejected by the host, or unreachable
        """
        form = self._signed_form({"transformation": f"q_{self.upload_quality}"})
        form["file"] = data_uri
        return await self._post(self._url("auto", "upload"), form, operation="upload")

    async def destroy(self, public_id: str) -> Dict[str, Any]:
        """
        Delete an asset. The host answers {"result": "ok"} on success and
        {"result": "not found"} when the public_id is unknown.
        """
        form = self._signed_form({"public_id": public_id})
        return await self._post(self._url("image", "destroy"), form, operation="destroy")

    async def _post(self, url: str, form: Dict[str, Any], operation: str) -> Dict[str, Any]:
        if not self.configured:
            raise MediaHostError(
                message="Media host is not configured",
                context={"operation": operation},
            )

        call_id = str(uuid.uuid4())[:8]
        start_time = time.perf_counter()

        try:
            async for attempt in AsyncRetrying(
                retry=retry_if_exception_type(httpx.TransportError),
                stop=stop_after_attempt(self.retry_attempts),
                wait=wait_exponential_jitter(
                    initial=self.retry_min_wait,
                    max=self.retry_max_wait,
                    jitter=1 if self.retry_max_wait else 0,
                ),
                before_sleep=before_sleep_log(logger, logging.WARNING),
                reraise=True,
            ):
                with attempt:
                    response = await self._http.post(url, data=form)
        except httpx.TransportError as e:
            logger.error(
                "[%s] Media host %s unreachable after %d attempts: %s",
                call_id,
                operation,
                self.retry_attempts,
                str(e),
            )
            raise MediaHostError(
                message="The media host is unreachable. Please try again later.",
                context={"call_id": call_id, "operation": operation},
            )

        duration_ms = (time.perf_counter() - start_time) * 1000

        try:
            payload = response.json()
        except ValueError:
            payload = {}

        if response.status_code >= 400:
            host_message = _host_error_message(payload)
            logger.error(
                "[%s] Media host %s failed with HTTP %d in %.0fms: %s",
                call_id,
                operation,
                response.status_code,
                duration_ms,
                host_message,
            )
            raise MediaHostError(
                status_code=response.status_code,
                context={"call_id": call_id, "operation": operation, "host_message": host_message},
            )

        if not isinstance(payload, dict):
            raise MediaHostError(
                message="The media host returned an unexpected response",
                context={"call_id": call_id, "operation": operation},
            )

        logger.info(
            "[%s] Media host %s completed in %.0fms",
            call_id,
            operation,
            duration_ms,
        )
        return payload

    async def aclose(self) -> None:
        await self._http.aclose()
