"""
Exceptions raised by the invoice extraction client.
"""


class AIServiceError(Exception):
    """The extraction model could not be called or produced no usable result."""

    pass


class ExtractionResponseError(AIServiceError):
    """The model replied, but the reply is not a valid invoice payload."""

    def __init__(self, message: str, content: str | None = None):
        super().__init__(message)
        self.content = content
