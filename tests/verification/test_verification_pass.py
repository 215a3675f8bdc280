from __future__ import annotations

import asyncio
import json
import random

import httpx
import pytest

from tests.helpers.provider_stubs import json_response, routed_handler
from tradewizard.classification import ClassificationCandidate, HSSelection
from tradewizard.compliance import ComplianceRequirement, CostRange
from tradewizard.market import MarketAggregator
from tradewizard.providers import VerificationProvider
from tradewizard.verification import (
    NEUTRAL_CONFIDENCE,
    SimulatedVerifier,
    VerificationPass,
    VerificationResult,
    apply_result,
)
from tradewizard.verification.simulated import CONFIDENCE_BANDS


def _requirement(req_id: str, **extra) -> ComplianceRequirement:
    return ComplianceRequirement(
        id=req_id,
        name=f"Requirement {req_id}",
        country_code="US",
        estimated_cost=CostRange(min=100, max=200),
        estimated_timeline_days=10,
        **extra,
    )


def _pass(make_client, routes, calls=None, **kwargs) -> VerificationPass:
    provider = VerificationProvider(make_client(routed_handler(routes, calls), name="perplexity", max_retries=0))
    return VerificationPass(provider, SimulatedVerifier(random.Random(3)), **kwargs)


@pytest.mark.parametrize("data_type", sorted(CONFIDENCE_BANDS))
def test_simulated_confidence_stays_in_band(data_type):
    baseline, _, ceiling = CONFIDENCE_BANDS[data_type]
    verifier = SimulatedVerifier(random.Random(42))

    results = [verifier.verify(data_type) for _ in range(200)]

    assert all(baseline <= item.confidence <= ceiling for item in results)
    assert all(item.source == "simulated" for item in results)
    assert any(item.verified for item in results)


def test_seeded_simulation_is_reproducible():
    first, second = SimulatedVerifier(random.Random(11)), SimulatedVerifier(random.Random(11))
    assert [first.verify("market") for _ in range(5)] == [second.verify("market") for _ in range(5)]


def test_without_provider_results_are_simulated():
    verification = VerificationPass(simulated=SimulatedVerifier(random.Random(1)))

    result = asyncio.run(verification.verify({"name": "Export Permit"}, "compliance"))

    assert not verification.uses_provider
    assert result.source == "simulated"
    assert 0.85 <= result.confidence <= 0.97


def test_unknown_data_type_rejected():
    with pytest.raises(ValueError):
        asyncio.run(VerificationPass().verify({}, "weather"))


def test_provider_result_is_normalized(make_client):
    calls = []
    verification = _pass(
        make_client,
        {"/verify": {"verified": True, "confidence": 92.0, "explanation": "Matches public sources"}},
        calls=calls,
    )

    result = asyncio.run(verification.verify({"market": "US"}, "market", {"markets": ["US"]}))

    assert result == VerificationResult(
        verified=True, confidence=0.92, explanation="Matches public sources", source="provider"
    )
    body = json.loads(calls[0].content)
    assert body == {"data": {"market": "US"}, "dataType": "market", "context": {"markets": ["US"]}}


def test_endpoint_ending_in_verify_is_used_as_is(make_client):
    calls = []
    client = make_client(
        routed_handler({"/api/verify": {"verified": True, "confidence": 0.8}}, calls),
        base_url="https://verifier.test/api/verify",
        max_retries=0,
    )
    verification = VerificationPass(VerificationProvider(client))

    asyncio.run(verification.verify({}, "product"))

    assert calls[0].url.path == "/api/verify"


def test_malformed_provider_response_falls_back_to_simulation(make_client):
    verification = _pass(make_client, {"/verify": {"verified": "yes", "confidence": 0.9}})

    result = asyncio.run(verification.verify({"id": "x"}, "product"))

    assert result.source == "simulated"


def test_force_simulated_skips_provider(make_client):
    calls = []
    verification = _pass(make_client, {"/verify": {"verified": True, "confidence": 1.0}}, calls, force_simulated=True)

    result = asyncio.run(verification.verify({}, "compliance"))

    assert result.source == "simulated"
    assert calls == []


def test_batch_failures_get_neutral_confidence_in_order(make_client):
    verification = _pass(make_client, {"/verify": json_response({"message": "down"}, 503)})
    requirements = [_requirement("a"), _requirement("b"), _requirement("c")]

    verified = asyncio.run(verification.verify_compliance_requirements(requirements))

    assert [item.id for item in verified] == ["a", "b", "c"]
    assert all(item.confidence_score == NEUTRAL_CONFIDENCE for item in verified)
    assert requirements[0].confidence_score is None


def test_batch_applies_verified_corrected_and_unverified_results(make_client):
    def handler(request: httpx.Request) -> httpx.Response:
        req_id = json.loads(request.content)["data"]["id"]
        if req_id == "a":
            return json_response({"verified": True, "confidence": 0.91})
        if req_id == "b":
            return json_response({"verified": False, "confidence": 0.7, "correctedData": {"name": "Fixed name"}})
        if req_id == "c":
            return json_response({"verified": False, "confidence": 0.2})
        return json_response({"verified": False, "confidence": 0.6, "correctedData": {"estimated_timeline_days": -5}})

    verification = _pass(make_client, {"/verify": handler})
    requirements = [_requirement("a"), _requirement("b"), _requirement("c"), _requirement("d")]

    verified = asyncio.run(verification.verify_compliance_requirements(requirements))

    assert [item.confidence_score for item in verified] == [0.91, 0.7, NEUTRAL_CONFIDENCE, NEUTRAL_CONFIDENCE]
    assert verified[1].name == "Fixed name"
    assert verified[3].estimated_timeline_days == 10


def test_market_insights_are_verified_per_market(make_client):
    calls = []
    verification = _pass(make_client, {"/verify": {"verified": True, "confidence": 0.88}}, calls)
    insights = asyncio.run(MarketAggregator().get_insights(["US", "JP"]))

    verified = asyncio.run(verification.verify_market_insights(insights, {"hsCode": "851713"}))

    assert list(verified) == ["US", "JP"]
    assert all(item.confidence_score == 0.88 for item in verified.values())
    assert insights["US"].confidence_score is None
    contexts = sorted(json.loads(call.content)["context"]["markets"][0] for call in calls)
    assert contexts == ["JP", "US"]


def test_classification_failure_is_neutral(make_client):
    verification = _pass(make_client, {"/verify": json_response({"message": "down"}, 500)})
    chapter = ClassificationCandidate(code="22", description="Beverages", confidence=0.9, source="provider")

    result = asyncio.run(verification.verify_classification(HSSelection(chapter=chapter)))

    assert result.source == "neutral"
    assert result.confidence == NEUTRAL_CONFIDENCE


def test_apply_result_on_mappings():
    payload = {"name": "Smartphone", "hs_code": "851713"}

    kept = apply_result(payload, VerificationResult(verified=True, confidence=0.9))
    replaced = apply_result(
        payload, VerificationResult(verified=False, confidence=0.6, corrected_data={"hs_code": "851714"})
    )
    neutral = apply_result(payload, VerificationResult(verified=False, confidence=0.1))

    assert kept == {"name": "Smartphone", "hs_code": "851713", "confidence_score": 0.9}
    assert replaced == {"hs_code": "851714", "confidence_score": 0.6}
    assert neutral["confidence_score"] == NEUTRAL_CONFIDENCE
