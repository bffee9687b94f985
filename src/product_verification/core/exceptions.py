"""
Domain exceptions and their HTTP status codes.
"""


class ProductVerificationError(Exception):
    """Base class for errors surfaced to API clients."""

    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class InvalidInputError(ProductVerificationError):
    """Malformed identifier or missing required field."""

    status_code = 400


class NotFoundError(ProductVerificationError):
    """No product with the requested identifier."""

    status_code = 404


class ConflictError(ProductVerificationError):
    """A product with the identifier already exists."""

    status_code = 409


class ImportFileError(ProductVerificationError):
    """Bulk import file could not be turned into product rows."""

    status_code = 400


class EmptyFileError(ImportFileError):
    """The spreadsheet has no sheet or no data rows."""


class SchemaError(ImportFileError):
    """A required column could not be located in the header row."""


class UnreadableFileError(ImportFileError):
    """The file content does not parse as the declared spreadsheet format."""


class UnsupportedFileError(ImportFileError):
    """The uploaded file extension is not an accepted spreadsheet format."""


class FileTooLargeError(ImportFileError):
    """The upload exceeds the configured size cap."""

    status_code = 413


class NoProductsError(ProductVerificationError):
    """A bulk QR request resolved to an empty product set."""

    status_code = 404


class StoreUnavailableError(ProductVerificationError):
    """Transient store failure: timeout, lost connection or sustained contention."""

    status_code = 503
