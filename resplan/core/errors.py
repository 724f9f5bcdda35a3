"""Domain error taxonomy shared by services and API handlers."""

from __future__ import annotations


class ResplanError(Exception):
    """Base class for typed domain errors."""

    code = "resplan_error"

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class DataUnavailable(ResplanError):
    """Reference dataset for a matrix build could not be obtained."""

    code = "data_unavailable"


class MalformedHierarchy(ResplanError):
    """Row forest violates id uniqueness, parent resolution or is cyclic."""

    code = "malformed_hierarchy"


class NarrativeGenerationError(ResplanError):
    """Text generation service failed or returned an unusable response."""

    code = "narrative_generation_failed"
