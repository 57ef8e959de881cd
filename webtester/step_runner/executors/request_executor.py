"""Build and dispatch the HTTP request of an API step."""

import asyncio
import json
import logging
from dataclasses import dataclass, field

import aiohttp
from pydantic import JsonValue
from yarl import URL

from webtester.step_runner.exceptions import TransportError
from webtester.step_runner.models.test_configuration import ApiRequest
from webtester.step_runner.variables import (
    BEARER_TOKEN_KEY,
    DEFAULT_TOKEN_TYPE,
    TOKEN_TYPE_KEY,
    VariableStore,
    substitute,
    substitute_body,
)

logger = logging.getLogger(__name__)

BODY_METHODS = frozenset({"POST", "PUT", "PATCH"})
DEFAULT_CONTENT_TYPE = "application/json"


@dataclass(frozen=True)
class PreparedRequest:
    """Request ready to be dispatched."""

    method: str
    url: str
    headers: dict[str, str] = field(default_factory=dict)
    body: str | None = None


@dataclass(frozen=True)
class ApiResponse:
    """Response of an API step."""

    status_code: int
    content_type: str = ""
    text: str = ""
    json_body: JsonValue = None

    @property
    def is_success(self) -> bool:
        """Whether the status code is in the 2xx range."""
        return 200 <= self.status_code < 300


def parse_json_body(content_type: str, text: str) -> JsonValue:
    """Parse a response body when it is declared as JSON.

    Returns:
        Parsed document, or None when the body is empty, not declared as
        JSON, or not valid JSON

    """
    if "json" not in content_type.lower() or not text.strip():
        return None
    try:
        document: JsonValue = json.loads(text)
    except json.JSONDecodeError:
        logger.debug("Response declared as JSON could not be parsed")
        return None
    return document


class RequestExecutor:
    """Dispatches API step requests with aiohttp."""

    def __init__(self, timeout: float = 100.0) -> None:
        """Initialize executor with a total request timeout in seconds."""
        self.timeout = aiohttp.ClientTimeout(total=timeout)

    def build_request(
        self, base_url: str, api_request: ApiRequest, store: VariableStore
    ) -> PreparedRequest:
        """Build the request for a step with variables substituted."""
        method = api_request.method.strip().upper()
        endpoint = substitute(api_request.endpoint, store)
        url = str(URL(base_url).join(URL(endpoint))) if base_url else endpoint

        headers: dict[str, str] = {}
        content_type: str | None = None
        for name, value in api_request.headers.items():
            value = substitute(value, store)
            # Content-Type follows the body and is applied below
            if name.lower() == "content-type":
                content_type = value
                continue
            headers[name] = value

        token = store.get(BEARER_TOKEN_KEY)
        if api_request.use_authentication and token is not None:
            token_type = store.get(TOKEN_TYPE_KEY) or DEFAULT_TOKEN_TYPE
            for name in [h for h in headers if h.lower() == "authorization"]:
                del headers[name]
            headers["Authorization"] = f"{token_type} {token}"

        body: str | None = None
        if api_request.body is not None and method in BODY_METHODS:
            body = json.dumps(substitute_body(api_request.body, store))
            headers["Content-Type"] = content_type or DEFAULT_CONTENT_TYPE

        return PreparedRequest(method=method, url=url, headers=headers, body=body)

    async def execute(
        self, base_url: str, api_request: ApiRequest, store: VariableStore
    ) -> ApiResponse:
        """Dispatch the request of an API step.

        Raises:
            TransportError: If the request could not be completed

        """
        request = self.build_request(base_url, api_request, store)
        logger.info(f"API Request: {request.method} {request.url}")

        try:
            async with aiohttp.ClientSession(timeout=self.timeout) as session:
                async with session.request(
                    request.method,
                    request.url,
                    headers=request.headers,
                    data=request.body,
                ) as response:
                    text = await response.text(errors="replace")
                    status = response.status
                    content_type = response.content_type or ""
        except (aiohttp.ClientError, asyncio.TimeoutError, ValueError) as e:
            raise TransportError(
                f"{request.method} {request.url} failed: {type(e).__name__}: {e}"
            ) from e

        logger.info(f"Status Code: {status}")
        return ApiResponse(
            status_code=status,
            content_type=content_type,
            text=text,
            json_body=parse_json_body(content_type, text),
        )
