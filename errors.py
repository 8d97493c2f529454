"""Error taxonomy shared by the orchestrators, the session layer and the API."""


class MathVisionError(Exception):
    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class MissingInputError(MathVisionError):
    """Neither problem text nor a usable image was supplied."""
    status_code = 400


class InvalidInputError(MathVisionError):
    """Malformed image payload or template input."""
    status_code = 400


class ModelOutputError(MathVisionError):
    """The model returned nothing that parses into the declared output shape."""
    status_code = 502


class ProviderError(MathVisionError):
    """Network, auth or rate-limit failure from the OCR or model provider."""
    status_code = 502


class ModelTimeoutError(ProviderError):
    status_code = 504


class OCRTimeoutError(ProviderError):
    status_code = 504


class SessionBusyError(MathVisionError):
    status_code = 409


class NoSolutionError(MathVisionError):
    status_code = 409
