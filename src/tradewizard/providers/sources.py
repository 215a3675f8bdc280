"""Typed facades over :class:`ProviderClient` for each upstream source."""

from __future__ import annotations

import json
import re
from typing import Any, Dict, List, Mapping, Optional, Sequence

from tradewizard.providers.client import ProviderClient
from tradewizard.providers.errors import MalformedResponseError
from tradewizard.providers.models import (
    BarriersResponse,
    BaseTariffResponse,
    ChatCompletionResponse,
    CompetitorWire,
    CompetitorsResponse,
    ComplianceRequirementWire,
    HSListingItem,
    HSListingResponse,
    HSMatch,
    HSSearchResponse,
    MarketSizeWire,
    ProductExampleWire,
    ProductExamplesResponse,
    RequirementsResponse,
    VerificationResponse,
)

_JSON_OBJECT_RE = re.compile(r"\{[\s\S]*\}")


class _Source:
    def __init__(self, client: ProviderClient) -> None:
        self.client = client

    @property
    def name(self) -> str:
        return self.client.name


class ClassificationProvider(_Source):
    """HS nomenclature search and hierarchy listings."""

    async def search(self, query: str) -> List[HSMatch]:
        response = await self.client.request_model(
            "GET", "/nomenclature/search", HSSearchResponse, params={"query": query}
        )
        return response.results

    async def chapters(self) -> List[HSListingItem]:
        response = await self.client.request_model("GET", "/nomenclature/chapters", HSListingResponse)
        return response.results

    async def headings(self, chapter: str) -> List[HSListingItem]:
        response = await self.client.request_model(
            "GET", "/nomenclature/headings", HSListingResponse, params={"chapter": chapter}
        )
        return response.results

    async def subheadings(self, heading: str) -> List[HSListingItem]:
        response = await self.client.request_model(
            "GET", "/nomenclature/subheadings", HSListingResponse, params={"heading": heading}
        )
        return response.results

    async def examples(self, hs_code: str) -> List[ProductExampleWire]:
        response = await self.client.request_model(
            "GET", "/nomenclature/examples", ProductExamplesResponse, params={"hsCode": hs_code}
        )
        return response.examples


class MarketDataProvider(_Source):
    """Per-market size, competition, barrier, tariff and requirement data."""

    @staticmethod
    def _category_params(categories: Sequence[str]) -> Dict[str, str]:
        return {"categories": ",".join(categories)} if categories else {}

    async def market_size(self, market: str, categories: Sequence[str] = ()) -> MarketSizeWire:
        return await self.client.request_model(
            "GET", f"/markets/{market}/size", MarketSizeWire, params=self._category_params(categories)
        )

    async def competitors(self, market: str, categories: Sequence[str] = ()) -> List[CompetitorWire]:
        response = await self.client.request_model(
            "GET", f"/markets/{market}/competitors", CompetitorsResponse, params=self._category_params(categories)
        )
        return response.competitors

    async def barriers(self, market: str, categories: Sequence[str] = ()) -> List[str]:
        response = await self.client.request_model(
            "GET", f"/markets/{market}/barriers", BarriersResponse, params=self._category_params(categories)
        )
        return response.barriers

    async def base_tariff(self, market: str) -> BaseTariffResponse:
        return await self.client.request_model("GET", f"/markets/{market}/tariff", BaseTariffResponse)

    async def requirements(self, market: str, categories: Sequence[str] = ()) -> List[ComplianceRequirementWire]:
        response = await self.client.request_model(
            "GET", f"/markets/{market}/requirements", RequirementsResponse, params=self._category_params(categories)
        )
        return response.requirements


def parse_json_content(provider: str, content: str) -> Dict[str, Any]:
    """Extract the JSON object embedded in a chat completion's text content."""

    match = _JSON_OBJECT_RE.search(content or "")
    if match is None:
        raise MalformedResponseError(provider, "completion did not contain a JSON object")
    try:
        parsed = json.loads(match.group(0))
    except json.JSONDecodeError as exc:
        raise MalformedResponseError(provider, f"completion JSON could not be parsed: {exc.msg}") from exc
    if not isinstance(parsed, dict):
        raise MalformedResponseError(provider, "completion JSON is not an object")
    return parsed


class LLMProvider(_Source):
    """Chat-completion provider used for structured prompts."""

    def __init__(
        self,
        client: ProviderClient,
        model: str = "gpt-4",
        temperature: float = 0.1,
        max_tokens: int = 1000,
    ) -> None:
        super().__init__(client)
        self.model = model
        self.temperature = temperature
        self.max_tokens = max_tokens

    async def complete(
        self,
        messages: Sequence[Mapping[str, str]],
        *,
        temperature: Optional[float] = None,
        max_tokens: Optional[int] = None,
    ) -> str:
        payload = {
            "model": self.model,
            "messages": [dict(message) for message in messages],
            "temperature": self.temperature if temperature is None else temperature,
            "max_tokens": self.max_tokens if max_tokens is None else max_tokens,
        }
        response = await self.client.request_model("POST", "/chat/completions", ChatCompletionResponse, json=payload)
        return response.choices[0].message.content

    async def complete_json(self, messages: Sequence[Mapping[str, str]], **kwargs: Any) -> Dict[str, Any]:
        """Run a completion whose content must be a JSON object.

        A completion that cannot be parsed raises :class:`MalformedResponseError`
        so callers treat it like any other provider failure.
        """

        content = await self.complete(messages, **kwargs)
        return parse_json_content(self.name, content)


class VerificationProvider(_Source):
    """Independent fact-checking provider."""

    async def verify(self, data: Any, data_type: str, context: Mapping[str, Any]) -> VerificationResponse:
        path = "" if self.client.config.base_url.rstrip("/").endswith("/verify") else "/verify"
        return await self.client.request_model(
            "POST",
            path,
            VerificationResponse,
            json={"data": data, "dataType": data_type, "context": dict(context)},
        )
