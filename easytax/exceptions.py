"""Error kinds raised by the tax code engine and store."""


class EasyTaxError(Exception):
    """Base class for all EasyTax errors."""

    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class NotFoundError(EasyTaxError):
    """No tenant could be resolved, or the path is outside the resource grammar."""

    status_code = 404


class BadRequestError(EasyTaxError):
    """Malformed record body or conflicting query parameters."""

    status_code = 400


class PersistenceError(EasyTaxError):
    """The underlying storage operation failed."""

    status_code = 500

    @classmethod
    def from_exception(cls, exc: Exception) -> "PersistenceError":
        """Wrap a driver error, keeping the driver's message but not the SQL."""
        return cls(str(getattr(exc, "orig", None) or exc))
