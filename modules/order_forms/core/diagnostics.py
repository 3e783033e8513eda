"""
Diagnostics reporting for non-fatal conditions.

Mapping, resolution and export keep going when a single field misbehaves.
Each such event is reported as a ``Diagnostic`` to a sink supplied by the
host application; the default sink writes to the standard logger.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Callable, List, Optional
import logging

logger = logging.getLogger(__name__)


class DiagnosticKind(str, Enum):
    MAPPING_NOT_FOUND = "mapping_not_found"
    MAPPING_PARSE_ERROR = "mapping_parse_error"
    FIELD_RESOLUTION_ERROR = "field_resolution_error"
    TRANSFORM_ERROR = "transform_error"
    UNKNOWN_SOURCE = "unknown_source"
    PDF_FIELD_NOT_FOUND = "pdf_field_not_found"
    UNSUPPORTED_FIELD_TYPE = "unsupported_field_type"


# Kinds the host should show to the user rather than only log
USER_VISIBLE_KINDS = frozenset({DiagnosticKind.MAPPING_PARSE_ERROR})

_LEVELS = {
    DiagnosticKind.MAPPING_NOT_FOUND: logging.WARNING,
    DiagnosticKind.MAPPING_PARSE_ERROR: logging.WARNING,
    DiagnosticKind.FIELD_RESOLUTION_ERROR: logging.ERROR,
    DiagnosticKind.TRANSFORM_ERROR: logging.ERROR,
    DiagnosticKind.UNKNOWN_SOURCE: logging.WARNING,
    DiagnosticKind.PDF_FIELD_NOT_FOUND: logging.WARNING,
    DiagnosticKind.UNSUPPORTED_FIELD_TYPE: logging.INFO,
}


@dataclass(frozen=True)
class Diagnostic:
    """
    A single non-fatal event.

    Attributes:
        kind: Event category
        message: Human-readable description
        field: PDF field concerned, if any
        error: Underlying exception, if any
    """
    kind: DiagnosticKind
    message: str
    field: Optional[str] = None
    error: Optional[BaseException] = None

    @property
    def user_visible(self) -> bool:
        return self.kind in USER_VISIBLE_KINDS

    def dict(self) -> dict:
        """Convert to dictionary for API responses."""
        return {
            "kind": self.kind.value,
            "message": self.message,
            "field": self.field,
            "error": None if self.error is None else str(self.error),
        }


DiagnosticsSink = Callable[[Diagnostic], None]


class LoggingDiagnosticsSink:
    """Route diagnostics to a logger at a level derived from their kind."""

    def __init__(self, target: Optional[logging.Logger] = None):
        self.logger = target or logger

    def __call__(self, diagnostic: Diagnostic) -> None:
        level = _LEVELS.get(diagnostic.kind, logging.WARNING)
        self.logger.log(
            level,
            f"[{diagnostic.kind.value}] {diagnostic.message}",
            exc_info=diagnostic.error if level >= logging.ERROR else None
        )


class CollectingDiagnosticsSink:
    """
    Keep diagnostics in memory, optionally forwarding them.

    Hosts use this to surface notices (toasts, inline warnings) after an
    operation completes.
    """

    def __init__(self, forward: Optional[DiagnosticsSink] = None):
        self.diagnostics: List[Diagnostic] = []
        self.forward = forward

    def __call__(self, diagnostic: Diagnostic) -> None:
        self.diagnostics.append(diagnostic)
        if self.forward is not None:
            self.forward(diagnostic)

    def of_kind(self, kind: DiagnosticKind) -> List[Diagnostic]:
        return [d for d in self.diagnostics if d.kind == kind]

    @property
    def user_notices(self) -> List[Diagnostic]:
        return [d for d in self.diagnostics if d.user_visible]

    def clear(self) -> None:
        self.diagnostics.clear()


def default_sink() -> DiagnosticsSink:
    return LoggingDiagnosticsSink()
