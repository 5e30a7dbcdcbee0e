"""
Exception types raised at the validation boundary.

Every calculator validates its input once, before any numerical work,
and reports precondition failures with the offending field name.
Numerical degradations inside a calculation are never raised; they are
reported as warnings on the result envelope instead.
"""


class RealOptionsError(ValueError):
    """Base class for all toolkit errors."""


class InvalidInputError(RealOptionsError):
    """
    A request field is missing or out of range.

    Attributes:
        field: Name of the offending input field
        reason: Human-readable explanation
    """

    def __init__(self, field: str, reason: str) -> None:
        self.field = field
        self.reason = reason
        super().__init__(f"{field}: {reason}")


class InsufficientDataError(RealOptionsError):
    """The request does not contain enough data to run the calculation."""
