"""
Request Guard
Generation tags for discarding stale responses and Result-shaped content calls
"""
import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Generic, Optional, TypeVar

from math_tutor.models.errors import ErrorKind
from math_tutor.services.content_service import ContentServiceError

logger = logging.getLogger(__name__)

T = TypeVar("T")


class GenerationTag:
    """Counter bumped on every session reset; a request keeps the value it started with"""

    def __init__(self) -> None:
        self._value = 0

    @property
    def value(self) -> int:
        return self._value

    def advance(self) -> int:
        self._value += 1
        return self._value

    def is_current(self, tag: int) -> bool:
        return tag == self._value


@dataclass(frozen=True)
class Outcome(Generic[T]):
    """Either a value or an error kind with a human-readable detail"""

    value: Optional[T] = None
    error: Optional[ErrorKind] = None
    detail: str = ""

    @property
    def ok(self) -> bool:
        return self.error is None


async def run_guarded(call: Awaitable[T], error_kind: ErrorKind) -> Outcome[T]:
    """
    Await a content service call and capture its failure as an Outcome

    Args:
        call: Awaitable returned by a ContentService operation
        error_kind: Kind recorded when the call fails

    Returns:
        Outcome holding the value, or the error kind and detail
    """
    try:
        value: Any = await call
    except ContentServiceError as e:
        logger.error(f"❌ {error_kind.value}: {e}")
        return Outcome(error=error_kind, detail=str(e))
    except Exception as e:
        logger.error(f"❌ Unexpected {error_kind.value} error: {e}", exc_info=True)
        return Outcome(error=error_kind, detail="An unexpected error occurred")
    return Outcome(value=value)
