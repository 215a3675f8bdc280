"""Shared fixtures for provider-backed tests."""

from __future__ import annotations

from typing import Any, Callable, Dict

import httpx
import pytest

from tests.helpers.provider_stubs import FakeClock, SleepRecorder
from tradewizard.config import ProviderConfig
from tradewizard.providers.client import ProviderClient


@pytest.fixture()
def fake_clock() -> FakeClock:
    return FakeClock()


@pytest.fixture()
def sleep_recorder() -> SleepRecorder:
    return SleepRecorder()


@pytest.fixture()
def make_client(sleep_recorder) -> Callable[..., ProviderClient]:
    """Build a ProviderClient whose HTTP traffic goes to ``handler``."""

    def _factory(handler: Callable[[httpx.Request], httpx.Response], **overrides: Any) -> ProviderClient:
        settings: Dict[str, Any] = {
            "name": "test-provider",
            "base_url": "https://provider.test/v1",
            "api_key": "secret-key",
        }
        settings.update(overrides)
        return ProviderClient(
            ProviderConfig(**settings),
            http_client=httpx.AsyncClient(transport=httpx.MockTransport(handler)),
            sleep=sleep_recorder,
        )

    return _factory
