"""Tiered provider lookup with a deterministic last resort.

Services describe each lookup as an ordered list of provider tiers plus a
fallback factory; :func:`first_available` tries the tiers in order, treats
any :class:`ProviderError` or unusable (empty) result as a miss, logs the
degradation and finally calls the fallback. Business code never wraps
provider calls in its own try/except.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Generic, List, Literal, Optional, Sequence, Tuple, TypeVar

from tradewizard.observability import log_fallback
from tradewizard.providers.errors import ProviderError

T = TypeVar("T")

Source = Literal["provider", "fallback"]
Tier = Tuple[str, Callable[[], Awaitable[T]]]


def non_empty(value: Any) -> bool:
    if value is None:
        return False
    try:
        return len(value) > 0
    except TypeError:
        return True


@dataclass(frozen=True)
class Outcome(Generic[T]):
    value: T
    source: Source
    provider: Optional[str] = None
    errors: Tuple[str, ...] = field(default_factory=tuple)

    @property
    def degraded(self) -> bool:
        return self.source == "fallback"


async def first_available(
    operation: str,
    tiers: Sequence[Tier[T]],
    fallback: Callable[[], T],
    *,
    accept: Callable[[T], bool] = non_empty,
) -> Outcome[T]:
    """Return the first acceptable provider result or the fallback value.

    Args:
        operation: Name used in fallback log events
        tiers: ``(provider_name, coroutine_function)`` pairs, tried in order
        fallback: Deterministic factory used when every tier misses
        accept: Predicate deciding whether a provider result is usable

    Returns:
        :class:`Outcome` tagged with the source that produced the value.
    """

    errors: List[str] = []
    for provider, call in tiers:
        try:
            value = await call()
        except ProviderError as exc:
            log_fallback(provider, operation, exc)
            errors.append(f"{provider}:{type(exc).__name__}")
            continue
        if accept(value):
            return Outcome(value=value, source="provider", provider=provider, errors=tuple(errors))
        log_fallback(provider, operation)
        errors.append(f"{provider}:EmptyResult")

    if not tiers:
        log_fallback("none", operation)
    return Outcome(value=fallback(), source="fallback", errors=tuple(errors))
