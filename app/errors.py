"""
Errors raised by the analysis services. Routers translate them to HTTP responses;
services never raise HTTPException themselves.
"""


class AnalysisError(Exception):
    """Base class for expected, user-facing analysis outcomes."""


class Unauthenticated(AnalysisError):
    def __init__(self, message: str = "Not authenticated"):
        super().__init__(message)


class LimitReached(AnalysisError):
    def __init__(self, operation: str, tier: str, limit: int):
        self.operation = operation
        self.tier = tier
        self.limit = limit
        super().__init__(
            f"Daily limit reached ({limit} {operation} analyses per day on the {tier} plan). "
            "Try again tomorrow."
        )


class NotFound(AnalysisError):
    pass


class UpstreamFailure(AnalysisError):
    """Gemini failed or timed out on the primary and (if configured) the backup key."""


class MalformedResponse(AnalysisError):
    """Gemini answered but the text is not valid JSON for the expected shape."""

    def __init__(self, message: str, raw_text: str = ""):
        self.raw_text = raw_text
        super().__init__(message)


class ConfigurationError(RuntimeError):
    """Missing primary credentials at startup. Fatal."""
