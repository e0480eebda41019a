"""Error taxonomy for slide generation and export."""

from typing import Optional


class DeckError(Exception):
    """Base error; carries the HTTP status and the public error message."""

    status_code = 500
    error = "Internal server error"

    def __init__(self, details: Optional[str] = None, error: Optional[str] = None):
        if error:
            self.error = error
        self.details = details
        super().__init__(details or self.error)

    def to_body(self) -> dict:
        body = {"error": self.error}
        if self.details:
            body["details"] = self.details
        return body


class ConfigurationError(DeckError):
    error = "Server configuration error"


class InvalidInput(DeckError):
    status_code = 400
    error = "Invalid request"


class EmptyInput(InvalidInput):
    error = "No slide data provided"


class MalformedResponse(DeckError):
    error = "Failed to generate slides"

    def __init__(self, details: Optional[str] = None, raw_text: str = ""):
        super().__init__(details)
        self.raw_text = raw_text


class UpstreamModelError(DeckError):
    error = "Failed to generate slides"


class AssemblyFailure(DeckError):
    error = "Failed to generate presentation"


class UpstreamFetchFailure(DeckError):
    """Image search or download failure. Always absorbed per slide."""
