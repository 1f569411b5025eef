"""
Fetch and error-normalization helpers for the Persistence Gateway client.

Every failed call surfaces as a GatewayError carrying the HTTP status (None for
transport or parse failures) and the server-provided reason when one exists.
"""

import logging
from typing import Any, Optional

import httpx

logger = logging.getLogger(__name__)

GENERIC_ERROR_MESSAGE = "Something went wrong. Please try again."


class GatewayError(Exception):
    """A Persistence Gateway call failed"""

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        payload: Optional[Any] = None,
        server_message: Optional[str] = None,
    ):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.payload = payload
        # Reason the server gave, verbatim; None when the server said nothing usable
        self.server_message = server_message

    @property
    def is_transport_error(self) -> bool:
        return self.status_code is None


def extract_error_message(payload: Any) -> Optional[str]:
    """Pull a human-readable reason out of an error body ({error} | {detail} | {message})"""
    if not isinstance(payload, dict):
        return None
    for key in ("error", "detail", "message"):
        value = payload.get(key)
        if isinstance(value, str) and value.strip():
            return value
    return None


def parse_json(response: httpx.Response) -> Any:
    """Decode a JSON body, normalizing malformed bodies to GatewayError"""
    try:
        return response.json()
    except ValueError as e:
        raise GatewayError(
            f"Malformed response from {response.request.method} {response.request.url.path}",
            status_code=None,
        ) from e


def raise_for_gateway_error(response: httpx.Response) -> None:
    """Raise GatewayError with the server's reason if the response is not 2xx"""
    if response.is_success:
        return

    try:
        payload = response.json()
    except ValueError:
        payload = None

    server_message = extract_error_message(payload)
    logger.warning(
        f"⚠️ Gateway {response.request.method} {response.request.url.path} failed: "
        f"{response.status_code} {server_message or ''}"
    )
    raise GatewayError(
        server_message or f"Request failed with status {response.status_code}",
        status_code=response.status_code,
        payload=payload,
        server_message=server_message,
    )


async def send_request(client: httpx.AsyncClient, method: str, url: str, **kwargs) -> Any:
    """
    Issue a request and return the decoded JSON body.

    Transport failures (connection refused, timeouts, protocol errors) become
    GatewayError(status_code=None); non-2xx responses become GatewayError with
    the status and server reason.
    """
    try:
        response = await client.request(method, url, **kwargs)
    except httpx.HTTPError as e:
        logger.error(f"❌ Gateway {method} {url} transport error: {e}")
        raise GatewayError(GENERIC_ERROR_MESSAGE, status_code=None) from e

    raise_for_gateway_error(response)
    if response.status_code == 204 or not response.content:
        return None
    return parse_json(response)


def user_facing_message(error: Exception, fallback: str) -> str:
    """Server-provided reason when present, generic fallback otherwise"""
    if isinstance(error, GatewayError) and error.server_message:
        return error.server_message
    return fallback
