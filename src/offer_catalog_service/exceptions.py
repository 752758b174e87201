"""Domain exceptions for the offer catalog service.

Each exception carries the HTTP status code the API layer responds with, so the
exception handlers registered in ``create_app`` stay a single mapping.
"""


class CatalogError(Exception):
    """Base class for catalog errors."""

    status_code = 500

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class InvalidInputError(CatalogError):
    """Malformed or missing input."""

    status_code = 400


class OrderOutOfRangeError(InvalidInputError):
    """Requested order lies outside the valid positions of the category."""

    def __init__(self, requested: int, upper_bound: int) -> None:
        super().__init__(f"Order {requested} is out of range, expected a value between 1 and {upper_bound}")
        self.requested = requested
        self.upper_bound = upper_bound


class DuplicateUserError(InvalidInputError):
    """A user with the same email is already registered."""


class NotFoundError(CatalogError):
    """No record matches the given id."""

    status_code = 404


class OfferNotFoundError(NotFoundError):
    """No offer of the category matches the given id."""

    def __init__(self, item_name: str) -> None:
        super().__init__(f"The {item_name} with the given ID does not exist.")


class AttachmentError(CatalogError):
    """The blob store rejected an image upload."""

    status_code = 500


class StoreUnavailableError(CatalogError):
    """The backing store could not be reached or rejected the request."""

    status_code = 503
