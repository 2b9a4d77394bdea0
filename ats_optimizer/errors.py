from __future__ import annotations
from enum import Enum


class AtsOptimizerError(Exception):
    """Base class for pipeline errors."""


class MalformedGenerationError(AtsOptimizerError):
    """Generated text holds no extractable payload."""

    def __init__(self, raw: str, kind: str = "json"):
        self.snippet = (raw or "")[:50]
        self.kind = kind
        super().__init__(f"No {kind} payload found in model output. Response: {self.snippet}")


class ParseFailure(AtsOptimizerError):
    """No structured resume could be produced; the run cannot continue."""


class GenerationTransportError(AtsOptimizerError):
    """The model call itself failed (network, auth, quota, timeout)."""


class ExtractionError(AtsOptimizerError):
    """The resume document could not be turned into text."""


class Degradation(str, Enum):
    SCORING = "ScoringDegraded"
    OPTIMIZATION = "OptimizationDegraded"
    FORMATTING = "FormattingDegraded"

    def notice(self, reason: object) -> str:
        return f"{self.value}: {reason}"
