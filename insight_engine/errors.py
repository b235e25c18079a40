# insight_engine/errors.py
"""Classified errors surfaced to callers.

Each error carries a short ``code`` so the API and CLI can report a terse,
labelled failure instead of a raw exception.
"""


class InsightEngineError(Exception):
    """Base class for classified engine errors"""

    code = "error"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def to_dict(self) -> dict:
        return {"error_type": self.code, "error": self.message}


class DatasetNotFoundError(InsightEngineError):
    """The referenced dataset cannot be located or read"""

    code = "not_found"


class UnsupportedFormatError(InsightEngineError):
    """The dataset extension has no row loader"""

    code = "unsupported_format"


class DatasetTooLargeError(InsightEngineError):
    """The dataset file exceeds the configured size limit"""

    code = "too_large"


class InvalidRequestError(InsightEngineError):
    """The caller supplied neither rows nor a data path, or an unknown provider"""

    code = "invalid_request"


class ProviderUnavailable(InsightEngineError):
    """A single provider attempt produced no usable text"""

    code = "provider_unavailable"

    def __init__(self, provider: str, reason: str, skipped: bool = False):
        super().__init__(f"{provider}: {reason}")
        self.provider = provider
        self.reason = reason
        # True when the provider was never contacted (e.g. no credential)
        self.skipped = skipped
