"""
Detector registry shared by the anomaly and red-flag engines.

Each detector is a pure function of a DetectionContext returning zero or
more findings. Engines iterate their registry in registration order, so
adding or removing a detector never touches orchestration code.
"""

from dataclasses import dataclass, field
from typing import Callable, Generic, Iterator, Optional, Sequence, TypeVar

import structlog

from twinscore.models.taxonomy import DEFAULT_TAXONOMY, Taxonomy
from twinscore.models.transactions import EnrichedTransaction, MonthlyAggregate

logger = structlog.get_logger()

FindingT = TypeVar("FindingT")


@dataclass(frozen=True)
class DetectionContext:
    """
    Inputs handed to every detector.

    Attributes:
        months: Ascending monthly aggregates
        transactions: Raw enriched transactions
        taxonomy: Category sets and keyword lists
    """

    months: Sequence[MonthlyAggregate]
    transactions: Sequence[EnrichedTransaction] = field(default_factory=tuple)
    taxonomy: Taxonomy = DEFAULT_TAXONOMY

    def series(self, attribute: str) -> list[float]:
        """Values of one MonthlyAggregate field in month order."""
        return [getattr(m, attribute) for m in self.months]


@dataclass(frozen=True)
class Detector(Generic[FindingT]):
    """
    A registered detector.

    Attributes:
        key: Stable identifier, unique within its registry
        fn: Pure function from context to findings
        min_months: Detector is skipped below this much history
    """

    key: str
    fn: Callable[[DetectionContext], list[FindingT]]
    min_months: int = 0

    def applies_to(self, context: DetectionContext) -> bool:
        return len(context.months) >= self.min_months

    def __call__(self, context: DetectionContext) -> list[FindingT]:
        if not self.applies_to(context):
            return []
        return self.fn(context)


class DetectorRegistry(Generic[FindingT]):
    """
    Ordered collection of detectors for one engine.

    Example:
        >>> ANOMALY_DETECTORS = DetectorRegistry("anomaly")
        >>> @ANOMALY_DETECTORS.register("spending_spike", min_months=3)
        ... def detect_spending_spike(ctx):
        ...     return []
    """

    def __init__(self, name: str):
        self.name = name
        self._detectors: dict[str, Detector[FindingT]] = {}

    def register(
        self, key: str, min_months: int = 0
    ) -> Callable[
        [Callable[[DetectionContext], list[FindingT]]],
        Callable[[DetectionContext], list[FindingT]],
    ]:
        """Decorator adding a detector function under key."""

        def decorator(
            fn: Callable[[DetectionContext], list[FindingT]],
        ) -> Callable[[DetectionContext], list[FindingT]]:
            if key in self._detectors:
                raise ValueError(f"Detector {key!r} already registered in {self.name}")
            self._detectors[key] = Detector(key=key, fn=fn, min_months=min_months)
            return fn

        return decorator

    def get(self, key: str) -> Optional[Detector[FindingT]]:
        return self._detectors.get(key)

    def keys(self) -> list[str]:
        return list(self._detectors)

    def __iter__(self) -> Iterator[Detector[FindingT]]:
        return iter(self._detectors.values())

    def __len__(self) -> int:
        return len(self._detectors)

    def run(self, context: DetectionContext) -> list[FindingT]:
        """Run every detector in registration order and collect findings."""
        findings: list[FindingT] = []
        for detector in self:
            if not detector.applies_to(context):
                logger.debug(
                    "detector_skipped",
                    registry=self.name,
                    detector=detector.key,
                    months=len(context.months),
                    min_months=detector.min_months,
                )
                continue
            findings.extend(detector(context))
        return findings
