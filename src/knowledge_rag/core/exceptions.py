"""Application exception taxonomy."""


class AppException(Exception):
    """Base application exception."""

    def __init__(self, message: str):
        self.message = message
        super().__init__(self.message)


class ExtractionFailure(AppException):
    """A source file could not be read or parsed."""

    def __init__(self, message: str = "Extraction failed"):
        super().__init__(message)


class UnsupportedFileType(ExtractionFailure):
    """No extractor is registered for the file extension."""

    def __init__(self, extension: str):
        self.extension = extension
        super().__init__(f"Unsupported file type: .{extension}")


class ModelUnavailable(AppException):
    """An embedding, reranking or OCR backend failed to initialize."""

    def __init__(self, message: str = "Model unavailable"):
        super().__init__(message)


class StoreUnavailable(AppException):
    """The vector store could not be reached or rejected an operation."""

    def __init__(self, message: str = "Vector store unavailable"):
        super().__init__(message)


class PayloadIndexMissing(StoreUnavailable):
    """A filtered query needs a payload index that does not exist."""

    def __init__(self, message: str = "Payload index required"):
        super().__init__(message)


class StoreTimeout(StoreUnavailable):
    """An outbound vector-store call exceeded its timeout."""

    def __init__(self, message: str = "Vector store request timed out"):
        super().__init__(message)
