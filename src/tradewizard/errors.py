"""Caller-facing error types.

Provider failures never leave the core; they are converted into fallback
data at component boundaries (see :mod:`tradewizard.providers.errors`). The
classes here are the ones a caller may actually see.
"""

from __future__ import annotations


class TradeIntelError(Exception):
    """Base class for errors raised by the trade intelligence core."""


class InvalidInputError(TradeIntelError, ValueError):
    """Caller input rejected before any provider call was attempted."""


class HierarchyError(InvalidInputError):
    """An HS code violates the chapter/heading/subheading prefix relation."""


class InvalidTransitionError(TradeIntelError):
    """A classification session was asked for a transition its state forbids."""

    def __init__(self, state: str, action: str) -> None:
        super().__init__(f"Cannot {action} while session is {state}")
        self.state = state
        self.action = action
