"""Async HTTP client shared by every upstream data source."""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Awaitable, Callable, Dict, Mapping, Optional, Type, TypeVar

import httpx
from pydantic import BaseModel, ValidationError
from tenacity import AsyncRetrying, RetryCallState, retry_if_exception, stop_after_attempt

from tradewizard.config import AuthScheme, ProviderConfig
from tradewizard.observability import log_event
from tradewizard.providers.errors import (
    AuthError,
    MalformedResponseError,
    ProviderError,
    ProviderUnavailable,
    TransportError,
    error_for_status,
)

logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT", bound=BaseModel)


def backoff_delay(attempt: int, base: float, cap: float) -> float:
    """Exponential backoff ``min(base * 2**attempt, cap)`` with ``attempt`` counted from 0."""

    return min(base * (2 ** attempt), cap)


def _is_retryable(exc: BaseException) -> bool:
    return isinstance(exc, ProviderError) and exc.retryable


def _alternate(scheme: AuthScheme) -> AuthScheme:
    return "header" if scheme == "bearer" else "bearer"


class ProviderClient:
    """JSON-over-HTTPS client for one provider.

    Idempotent requests are retried on transport failures, 429 and 5xx. A 401
    may trigger a single retry with the alternate authentication scheme when
    ``config.alternate_auth`` is set; a scheme that works is kept for later
    calls. Every failure surfaces as a :class:`ProviderError` subclass.
    """

    def __init__(
        self,
        config: ProviderConfig,
        http_client: httpx.AsyncClient | None = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self.config = config
        self._owns_client = http_client is None
        self._http = http_client or httpx.AsyncClient(timeout=config.timeout)
        self._sleep = sleep
        self._scheme: AuthScheme = config.auth_scheme

    @property
    def name(self) -> str:
        return self.config.name

    @property
    def configured(self) -> bool:
        return self.config.configured

    @property
    def auth_scheme(self) -> AuthScheme:
        return self._scheme

    async def aclose(self) -> None:
        if self._owns_client:
            await self._http.aclose()

    async def __aenter__(self) -> "ProviderClient":
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    # -------------------------------------------------------------------------
    # Requests
    # -------------------------------------------------------------------------

    async def request(
        self,
        method: str,
        path: str,
        *,
        params: Optional[Mapping[str, Any]] = None,
        json: Any = None,
        idempotent: bool = True,
    ) -> Any:
        """Send a request and return the decoded JSON body.

        Raises:
            ProviderUnavailable: no credential configured (nothing is sent)
            ProviderError: any other failure after retries are exhausted
        """

        if not self.configured:
            raise ProviderUnavailable(self.name, "credential not configured")

        try:
            return await self._send_with_retries(method, path, params, json, idempotent, self._scheme)
        except AuthError as exc:
            if exc.status != 401 or not self.config.alternate_auth:
                raise
            alternate = _alternate(self._scheme)
            log_event(
                "provider.auth_retry",
                provider=self.name,
                from_scheme=self._scheme,
                to_scheme=alternate,
            )
            body = await self._send_with_retries(method, path, params, json, idempotent, alternate)
            self._scheme = alternate
            return body

    async def request_model(
        self,
        method: str,
        path: str,
        model: Type[ModelT],
        *,
        params: Optional[Mapping[str, Any]] = None,
        json: Any = None,
        idempotent: bool = True,
    ) -> ModelT:
        """Send a request and validate the body against ``model``."""

        body = await self.request(method, path, params=params, json=json, idempotent=idempotent)
        try:
            return model.model_validate(body)
        except ValidationError as exc:
            raise MalformedResponseError(
                self.name, f"{model.__name__} validation failed: {exc.error_count()} error(s)"
            ) from exc

    async def _send_with_retries(
        self,
        method: str,
        path: str,
        params: Optional[Mapping[str, Any]],
        json: Any,
        idempotent: bool,
        scheme: AuthScheme,
    ) -> Any:
        attempts = self.config.max_retries + 1 if idempotent else 1

        def _wait(state: RetryCallState) -> float:
            return backoff_delay(state.attempt_number - 1, self.config.backoff_base, self.config.backoff_cap)

        def _before_sleep(state: RetryCallState) -> None:
            exc = state.outcome.exception() if state.outcome else None
            logger.info(
                "Retrying %s %s on %s after %s (attempt %s/%s)",
                method,
                path,
                self.name,
                type(exc).__name__,
                state.attempt_number,
                attempts,
            )

        retrying = AsyncRetrying(
            stop=stop_after_attempt(attempts),
            wait=_wait,
            retry=retry_if_exception(_is_retryable),
            before_sleep=_before_sleep,
            sleep=self._sleep,
            reraise=True,
        )
        async for attempt in retrying:
            with attempt:
                return await self._send_once(method, path, params, json, scheme)
        raise TransportError(self.name, "retry loop exited without a result")  # pragma: no cover

    async def _send_once(
        self,
        method: str,
        path: str,
        params: Optional[Mapping[str, Any]],
        json: Any,
        scheme: AuthScheme,
    ) -> Any:
        url = self.config.base_url.rstrip("/")
        if path.strip("/"):
            url = f"{url}/{path.lstrip('/')}"
        headers: Dict[str, str] = {"Accept": "application/json"}
        headers.update(self.config.extra_headers)
        headers.update(self.config.auth_headers(scheme))
        try:
            response = await self._http.request(
                method,
                url,
                params=dict(params) if params else None,
                json=json,
                headers=headers,
                timeout=self.config.timeout,
            )
        except httpx.TimeoutException as exc:
            raise TransportError(self.name, f"timed out after {self.config.timeout}s") from exc
        except httpx.HTTPError as exc:
            raise TransportError(self.name, f"{type(exc).__name__}: {exc}") from exc

        if response.status_code >= 400:
            raise error_for_status(self.name, response.status_code, _error_message(response))
        try:
            return response.json()
        except ValueError as exc:
            raise MalformedResponseError(self.name, "response body is not valid JSON") from exc


def _error_message(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        return response.text[:200] or response.reason_phrase
    if isinstance(body, dict):
        for key in ("message", "error", "detail"):
            value = body.get(key)
            if isinstance(value, str):
                return value
            if isinstance(value, dict) and isinstance(value.get("message"), str):
                return value["message"]
    return response.reason_phrase
