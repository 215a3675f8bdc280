"""Command-line interface for the trade intelligence core."""

from __future__ import annotations

import asyncio
import json
from typing import Any, Awaitable, Callable, Optional, Sequence, TypeVar

import click

from tradewizard.bootstrap import TradeIntelServices, build_services
from tradewizard.classification.models import ClassificationCandidate
from tradewizard.classification.session import ClassificationSession
from tradewizard.errors import TradeIntelError
from tradewizard.market.models import BusinessProfile
from tradewizard.verification.models import NEUTRAL_CONFIDENCE

T = TypeVar("T")


def _run(work: Callable[[TradeIntelServices], Awaitable[T]]) -> T:
    async def _main() -> T:
        services = build_services()
        try:
            return await work(services)
        finally:
            await services.aclose()

    try:
        return asyncio.run(_main())
    except TradeIntelError as exc:
        raise click.ClickException(str(exc)) from exc


def _echo(payload: Any) -> None:
    click.echo(json.dumps(payload, indent=2, default=str))


def _profile(experience: str, certifications: Sequence[str]) -> BusinessProfile:
    return BusinessProfile(export_experience=experience, certifications=list(certifications))


market_option = click.option(
    "--market", "markets", multiple=True, required=True, help="ISO alpha-2 target market (repeatable)."
)
category_option = click.option("--category", "categories", multiple=True, help="Product category (repeatable).")
experience_option = click.option(
    "--experience",
    type=click.Choice(["none", "some", "extensive"]),
    default="none",
    show_default=True,
    help="Exporter's prior export experience.",
)
certification_option = click.option(
    "--certification", "certifications", multiple=True, help="Certification already held (repeatable)."
)


@click.group()
def cli() -> None:
    """Trade intelligence command suite."""


@cli.command()
@click.argument("description")
@click.option("--threshold", type=float, default=0.0, show_default=True, help="Minimum confidence.")
@click.option("--max-results", type=int, default=None, help="Maximum number of candidates.")
def classify(description: str, threshold: float, max_results: Optional[int]) -> None:
    """Classify a product DESCRIPTION into ranked HS code candidates."""

    candidates = _run(
        lambda services: services.classification.classify(
            description, confidence_threshold=threshold, max_results=max_results
        )
    )
    _echo([item.model_dump() for item in candidates])


@cli.command()
@click.argument("hs_code")
def path(hs_code: str) -> None:
    """Show the chapter/heading/subheading path for HS_CODE."""

    async def work(services: TradeIntelServices):
        return services.classification.get_hs_code_path(hs_code)

    _echo([item.model_dump(mode="json") for item in _run(work)])


@cli.command()
@market_option
@category_option
@experience_option
@click.option("--no-verify", is_flag=True, help="Skip the verification pass.")
def markets(markets: Sequence[str], categories: Sequence[str], experience: str, no_verify: bool) -> None:
    """Aggregate market insights for each target market."""

    async def work(services: TradeIntelServices):
        insights = await services.aggregator.get_insights(markets, categories, _profile(experience, ()))
        if no_verify:
            return insights
        return await services.verification.verify_market_insights(insights, {"markets": list(insights)})

    _echo({code: item.model_dump(mode="json") for code, item in _run(work).items()})


@cli.command()
@market_option
@category_option
@certification_option
def compliance(markets: Sequence[str], categories: Sequence[str], certifications: Sequence[str]) -> None:
    """List compliance requirements with total cost and timeline."""

    async def work(services: TradeIntelServices):
        return await services.compliance.get_requirements(markets, categories, _profile("none", certifications))

    _echo(_run(work).model_dump(mode="json"))


async def _chosen_candidate(
    services: TradeIntelServices, hs_code: str, description: Optional[str]
) -> ClassificationCandidate:
    engine = services.classification
    leaf = engine.get_hs_code_path(hs_code)[-1]
    if description:
        for candidate in await engine.classify(description):
            if candidate.code == leaf.code:
                return candidate
    # hand-entered codes carry no provider evidence
    return ClassificationCandidate(
        code=leaf.code, description=leaf.name, confidence=NEUTRAL_CONFIDENCE, source="fallback"
    )


@cli.command()
@click.option("--hs-code", required=True, help="Six-digit HS subheading already chosen for the product.")
@click.option("--description", default=None, help="Product description used to score the chosen code.")
@market_option
@category_option
@experience_option
@certification_option
def report(
    hs_code: str,
    description: Optional[str],
    markets: Sequence[str],
    categories: Sequence[str],
    experience: str,
    certifications: Sequence[str],
) -> None:
    """Assemble an export readiness report for a chosen HS subheading."""

    async def work(services: TradeIntelServices):
        session = ClassificationSession(services.classification, auto_advance=False)
        await session.apply_search_result(await _chosen_candidate(services, hs_code, description))
        session.complete()
        return await services.assembler.assemble(
            session, markets, categories, _profile(experience, certifications)
        )

    _echo(_run(work).model_dump(mode="json"))


if __name__ == "__main__":
    cli()
