"""Model-then-heuristic resolution.

Every classification point in the pipeline asks the model first and falls
back to a deterministic heuristic when the model is unreachable, raises, or
replies with something that does not parse.
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from enum import Enum
from typing import Generic, TypeVar

from gitchat.utils.logging import get_logger

logger = get_logger("llm.fallback")

T = TypeVar("T")


class ResolutionSource(Enum):
    """Which tier produced a resolved value."""
    MODEL = "model"
    FALLBACK = "fallback"
    USER = "user"


@dataclass(frozen=True)
class Resolution(Generic[T]):
    """Outcome of resolve_with_fallback()."""
    value: T
    source: ResolutionSource
    error: str | None = None

    @property
    def from_model(self) -> bool:
        return self.source is ResolutionSource.MODEL


async def resolve_with_fallback(
    model_call: Callable[[], Awaitable[T | None]],
    fallback: Callable[[], T],
    *,
    name: str = "resolution",
) -> Resolution[T]:
    """Resolve a value with the model, falling back to a heuristic.

    ``model_call`` returns the parsed value, or ``None`` when the reply was
    ambiguous or invalid. Any exception it raises is logged and treated the
    same way. ``fallback`` must be deterministic and must not raise.

    Args:
        model_call: Coroutine factory that asks the model and parses the reply
        fallback: Deterministic heuristic
        name: Label used in log events

    Returns:
        Resolution with the value and the tier that produced it
    """
    try:
        value = await model_call()
    except Exception as exc:  # noqa: BLE001 - any model failure selects the fallback
        error = str(exc) or type(exc).__name__
        logger.debug("fallback.model_failed", resolution=name, error=error)
        return Resolution(fallback(), ResolutionSource.FALLBACK, error)

    if value is None:
        logger.debug("fallback.model_ambiguous", resolution=name)
        return Resolution(fallback(), ResolutionSource.FALLBACK, "ambiguous model reply")

    return Resolution(value, ResolutionSource.MODEL)
