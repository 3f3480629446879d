"""
Fallback chain engine.

A chain is an ordered list of named extraction strategies. Each strategy
receives the same input (usually page HTML) and returns a tagged Outcome:
found(url), not_found() or parse_error(detail). The chain runs strategies
in order and stops at the first `found`; misses are soft failures.

Strategies are plain functions so that adding, removing or reordering them
as upstream markup changes is a one-line edit in the resolver.
"""

import json
import logging
from enum import Enum
from typing import Any, Callable, List, Optional, Tuple

from pydantic import BaseModel, ConfigDict

from app.models.media import is_absolute_http_url


class OutcomeStatus(str, Enum):
    FOUND = "found"
    NOT_FOUND = "not_found"
    PARSE_ERROR = "parse_error"


class Outcome(BaseModel):
    """Result of one extraction strategy."""
    model_config = ConfigDict(frozen=True)

    status: OutcomeStatus
    url: Optional[str] = None
    detail: Optional[str] = None

    @classmethod
    def found(cls, url: str) -> "Outcome":
        return cls(status=OutcomeStatus.FOUND, url=url)

    @classmethod
    def not_found(cls, detail: Optional[str] = None) -> "Outcome":
        return cls(status=OutcomeStatus.NOT_FOUND, detail=detail)

    @classmethod
    def parse_error(cls, detail: str) -> "Outcome":
        return cls(status=OutcomeStatus.PARSE_ERROR, detail=detail)

    @property
    def is_found(self) -> bool:
        return self.status == OutcomeStatus.FOUND


class ExtractionAttempt(BaseModel):
    """Record of one strategy run, kept only for the duration of a chain run."""
    model_config = ConfigDict(frozen=True)

    strategy_id: str
    outcome: Outcome


class ChainResult(BaseModel):
    url: Optional[str] = None
    strategy_id: Optional[str] = None
    attempts: List[ExtractionAttempt] = []

    @property
    def succeeded(self) -> bool:
        return self.url is not None


Strategy = Callable[..., Outcome]

# Exceptions a strategy may raise while picking apart upstream markup
PARSE_ERRORS = (ValueError, KeyError, IndexError, TypeError, AttributeError, json.JSONDecodeError)


class FallbackChain:
    """Ordered sequence of (strategy_id, strategy) pairs tried until one finds a URL."""

    def __init__(self, name: str, strategies: List[Tuple[str, Strategy]]):
        self.name = name
        self.strategies = list(strategies)

    @property
    def strategy_ids(self) -> List[str]:
        return [strategy_id for strategy_id, _ in self.strategies]

    def run(self, *args: Any, logger: Optional[logging.LoggerAdapter] = None, **kwargs: Any) -> ChainResult:
        """
        Run strategies in order with the given arguments.

        A strategy that raises one of PARSE_ERRORS is recorded as a parse
        error and the chain moves on; any other exception propagates. A
        "found" URL that is not an absolute http(s) URL counts as a miss.

        Returns:
            ChainResult with the winning URL (or None) and every attempt made
        """
        attempts: List[ExtractionAttempt] = []

        for strategy_id, strategy in self.strategies:
            try:
                outcome = strategy(*args, **kwargs)
            except PARSE_ERRORS as e:
                outcome = Outcome.parse_error(f"{type(e).__name__}: {e}")

            if outcome.is_found and not is_absolute_http_url(outcome.url):
                outcome = Outcome.not_found(f"not an absolute http(s) URL: {outcome.url!r}")

            attempts.append(ExtractionAttempt(strategy_id=strategy_id, outcome=outcome))

            if logger:
                if outcome.is_found:
                    logger.info(f"[{self.name}] {strategy_id}: found media URL")
                else:
                    detail = f" ({outcome.detail})" if outcome.detail else ""
                    logger.debug(f"[{self.name}] {strategy_id}: {outcome.status.value}{detail}")

            if outcome.is_found:
                return ChainResult(url=outcome.url, strategy_id=strategy_id, attempts=attempts)

        if logger:
            logger.warning(f"[{self.name}] all {len(attempts)} strategies exhausted")
        return ChainResult(attempts=attempts)
