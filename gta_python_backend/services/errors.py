"""Exceptions raised by the grounded-theory pipeline."""


class GroundedTheoryError(Exception):
    """Base error for pipeline failures that callers may want to distinguish."""

    def __init__(self, code: str, message: str):
        super().__init__(message)
        self.code = code
        self.message = message


class AnalysisCancelledError(GroundedTheoryError):
    """Raised when a caller sets the cancel event between clusters or phases."""

    def __init__(self, phase: str):
        super().__init__("analysis_cancelled", f"Analysis cancelled during {phase}")
        self.phase = phase


class ConceptExtractionError(GroundedTheoryError):
    """Raised by concept-extraction clients; the extractor treats it as zero AI concepts."""

    def __init__(self, message: str):
        super().__init__("concept_extraction_failed", message)


def raise_if_cancelled(cancel_event, phase: str) -> None:
    """Cooperative cancellation check used between clusters and between phases."""
    if cancel_event is not None and cancel_event.is_set():
        raise AnalysisCancelledError(phase)
