"""Typed errors raised by the data layer.

Views catch ``CommerceError`` at the interaction boundary and show
``message`` to the user; nothing in ``db`` swallows them.
"""


class CommerceError(Exception):
    """Base class for every error the store operations raise."""

    default_message = "Operation failed."

    def __init__(self, message: str | None = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)


class NotFoundError(CommerceError):
    # also used for rows owned by another customer
    default_message = "Not found."


class ValidationError(CommerceError):
    default_message = "Invalid input."


class InsufficientStockError(CommerceError):
    default_message = "Insufficient stock."


class EmptyCartError(CommerceError):
    default_message = "Cart is empty."


class CustomerNotFoundError(CommerceError):
    default_message = "Customer not found."


class UnauthenticatedError(CommerceError):
    default_message = "Authentication required."


class UnauthorizedError(CommerceError):
    default_message = "Not allowed."


class ConflictError(CommerceError):
    default_message = "Already exists."
