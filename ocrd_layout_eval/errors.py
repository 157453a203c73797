class EvaluationError(Exception):
    """Failure which aborts the evaluation of one page (no partial metrics)."""

class ValidationError(EvaluationError, ValueError):
    """
    Malformed input: rectangles of non-positive size or outside the image,
    foreground counts exceeding the rectangle area, inconsistent page totals
    or pixel class configuration.
    """

class ResourceError(EvaluationError, RuntimeError):
    """Tracker images cannot be allocated or image pixel buffers cannot be accessed."""
