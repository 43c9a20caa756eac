from __future__ import annotations

import asyncio
import logging
from functools import partial
from typing import Any, List, Optional, Sequence
from urllib.parse import quote

import httpx
from pydantic import TypeAdapter, ValidationError

from models.errors import ErrorKind, SyncError
from models.records import OutageRecord, SiteDirectory
from models.schemas import OutagePayload, OutageUpdatePayload, SiteInfoPayload
from services.backoff import DEFAULT_POLICY, BackoffPolicy, Sleep, retry_with_backoff

logger = logging.getLogger(__name__)

API_KEY_HEADER = "x-api-key"
JSON_MEDIA_TYPE = "application/json"
DEFAULT_TIMEOUT = 10.0

_OUTAGES_ADAPTER = TypeAdapter(List[OutagePayload])
_UPDATES_ADAPTER = TypeAdapter(List[OutageUpdatePayload])

_STATUS_KINDS = {
    400: ErrorKind.invalid_request,
    403: ErrorKind.access_denied,
    404: ErrorKind.not_found,
    429: ErrorKind.rate_limited,
}


def classify_response(response: httpx.Response) -> Optional[SyncError]:
    """Map an HTTP response to the error it represents, or ``None`` on success."""
    if response.status_code < 400:
        return None
    kind = _STATUS_KINDS.get(response.status_code, ErrorKind.remote_failure)
    return SyncError(kind, _error_message(response))


def _error_message(response: httpx.Response) -> str:
    status_text = response.reason_phrase or f"HTTP {response.status_code}"
    content_type = response.headers.get("content-type", "")
    if content_type.split(";")[0].strip().lower() != JSON_MEDIA_TYPE:
        return status_text
    try:
        data = response.json()
    except ValueError:
        return status_text
    message = data.get("message") if isinstance(data, dict) else None
    if isinstance(message, str) and message.strip():
        return message
    return status_text


class OutageApiClient:
    """Async HTTP client for the outage-tracking service.

    Every call is retried under ``policy`` when it fails with a rate limit,
    a server error, a timeout, or any other request error raised by httpx
    (transport failures and undecodable response bodies alike).
    """

    def __init__(
        self,
        base_url: str,
        api_key: str,
        *,
        timeout: float = DEFAULT_TIMEOUT,
        policy: BackoffPolicy = DEFAULT_POLICY,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        sleep: Sleep = asyncio.sleep,
    ) -> None:
        if not base_url or not base_url.strip():
            raise SyncError(ErrorKind.invalid_argument, "A non-blank base URI is required.")
        if not api_key or not api_key.strip():
            raise SyncError(ErrorKind.invalid_argument, "A non-blank API key is required.")
        self._policy = policy
        self._sleep = sleep
        self._client = httpx.AsyncClient(
            base_url=base_url.rstrip("/"),
            timeout=timeout,
            headers={API_KEY_HEADER: api_key, "Accept": JSON_MEDIA_TYPE},
            transport=transport,
        )
        logger.debug("Created outage API client for %s.", base_url)

    async def aclose(self) -> None:
        await self._client.aclose()

    async def __aenter__(self) -> OutageApiClient:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    async def fetch_outages(self) -> List[OutageRecord]:
        response = await self._request("GET", "/outages", operation="fetch_outages")
        try:
            payloads = _OUTAGES_ADAPTER.validate_python(response.json())
        except (ValueError, ValidationError) as exc:
            raise _malformed("outages", exc) from exc
        return [payload.to_record() for payload in payloads]

    async def fetch_site_directory(self, site_id: str) -> SiteDirectory:
        path = f"/site-info/{quote(site_id, safe='')}"
        response = await self._request("GET", path, operation="fetch_site_directory")
        try:
            payload = SiteInfoPayload.model_validate(response.json())
        except (ValueError, ValidationError) as exc:
            raise _malformed("site information", exc) from exc
        return payload.to_directory()

    async def submit(self, site_id: str, records: Sequence[OutageRecord]) -> None:
        updates = [OutageUpdatePayload.from_record(record) for record in records]
        body = _UPDATES_ADAPTER.dump_python(updates, mode="json")
        logger.debug(
            "Sending update to /site-outages/%s: %s",
            site_id,
            body,
            extra={"site_id": site_id, "record_count": len(body)},
        )
        path = f"/site-outages/{quote(site_id, safe='')}"
        await self._request(
            "POST",
            path,
            operation="submit",
            json=body,
            headers={"Content-Type": JSON_MEDIA_TYPE},
        )

    async def _request(self, method: str, path: str, *, operation: str, **kwargs: Any) -> httpx.Response:
        return await retry_with_backoff(
            partial(self._send, method, path, **kwargs),
            self._policy,
            sleep=self._sleep,
            operation_name=operation,
        )

    async def _send(self, method: str, path: str, **kwargs: Any) -> httpx.Response:
        logger.debug("%s %s", method, path)
        try:
            response = await self._client.request(method, path, **kwargs)
        except httpx.TimeoutException as exc:
            raise SyncError(
                ErrorKind.remote_failure, f"Request to {path} timed out.", cause=exc
            ) from exc
        except httpx.RequestError as exc:
            raise SyncError(
                ErrorKind.remote_failure,
                f"Request to {path} failed: {str(exc) or type(exc).__name__}",
                cause=exc,
            ) from exc

        error = classify_response(response)
        if error is not None:
            logger.debug(
                "Request %s %s failed with status %d.",
                method,
                path,
                response.status_code,
                extra={"status": response.status_code, "kind": error.kind.value},
            )
            raise error
        return response


def _malformed(what: str, exc: Exception) -> SyncError:
    return SyncError(ErrorKind.remote_failure, f"Unexpected {what} payload from the API.", cause=exc)
