"""Error types raised by the tutor."""


class TutorError(Exception):
    """Base class for tutor errors."""


class GenerationError(TutorError):
    """Scenario or mock-question generation failed or returned a malformed payload."""


class EvaluationError(TutorError):
    """Grading failed or returned a malformed payload."""


class ValidationError(TutorError):
    """User input or the requested action is not allowed in the current state."""
