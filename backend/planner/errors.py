"""Error types surfaced by the study plan generation pipeline.

Every error carries a stable ``code`` that the HTTP layer returns verbatim:

- ``validation_error``: required generation fields are missing or malformed
- ``not_found``: the caller has no study plan to regenerate
- ``dependency_error``: the plan store failed while persisting a run
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional


class StudyPlanError(Exception):
    """Base class for study plan errors reported to callers."""

    code = "study_plan_error"

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)

    def to_payload(self) -> Dict[str, Any]:
        return {"code": self.code, "message": self.message}


class PlanValidationError(StudyPlanError):
    """Raised before any store access when a generation request is incomplete."""

    code = "validation_error"

    def __init__(self, message: str, *, missing_fields: Optional[List[str]] = None) -> None:
        self.missing_fields = list(missing_fields or [])
        super().__init__(message)

    def to_payload(self) -> Dict[str, Any]:
        payload = super().to_payload()
        if self.missing_fields:
            payload["missing_fields"] = list(self.missing_fields)
        return payload


class PlanNotFoundError(StudyPlanError, LookupError):
    code = "not_found"


class DependencyError(StudyPlanError):
    """Raised when an external collaborator fails in a way that aborts the run.

    Attributes:
        dependency: Name of the failing collaborator (``plan_store``, ``checklists``)
    """

    code = "dependency_error"

    def __init__(self, dependency: str, message: str) -> None:
        self.dependency = dependency
        super().__init__(message)

    def to_payload(self) -> Dict[str, Any]:
        payload = super().to_payload()
        payload["dependency"] = self.dependency
        return payload


__all__ = [
    "DependencyError",
    "PlanNotFoundError",
    "PlanValidationError",
    "StudyPlanError",
]
