"""
Domain: error taxonomy for the sales model.

Four kinds of failure exist:
- InvalidArgument: a value outside its allowed range (blank strings, negative
  amounts, quantities or percentages out of bounds).
- CurrencyMismatch: arithmetic or assignment across different currency codes.
- StateConflict: an operation the aggregate's current state forbids
  (mutating or re-cancelling a cancelled sale, duplicate sale numbers).
- NotFound: a referenced item or sale does not exist.

All are raised synchronously at the point of violation. The API layer maps
each kind onto an HTTP status.
"""

from __future__ import annotations


class SalesDomainError(Exception):
    """Base class for every error raised by the sales domain."""


class InvalidArgument(SalesDomainError, ValueError):
    pass


class InvalidMoney(InvalidArgument):
    pass


class InvalidFactor(InvalidArgument):
    pass


class InvalidPercentage(InvalidArgument):
    pass


class InvalidQuantity(InvalidArgument):
    pass


class DiscountExceedsLineTotal(InvalidArgument):
    pass


class InvalidCancellation(InvalidArgument):
    pass


class CurrencyMismatch(SalesDomainError, ValueError):
    pass


class StateConflict(SalesDomainError):
    pass


class SaleAlreadyCancelled(StateConflict):
    """Raised when a cancelled sale is mutated or cancelled again."""


class DuplicateSaleNumber(StateConflict):
    pass


class NotFound(SalesDomainError, LookupError):
    pass


class ItemNotFound(NotFound):
    pass


class SaleNotFound(NotFound):
    pass


__all__ = [
    "SalesDomainError",
    "InvalidArgument",
    "InvalidMoney",
    "InvalidFactor",
    "InvalidPercentage",
    "InvalidQuantity",
    "DiscountExceedsLineTotal",
    "InvalidCancellation",
    "CurrencyMismatch",
    "StateConflict",
    "SaleAlreadyCancelled",
    "DuplicateSaleNumber",
    "NotFound",
    "ItemNotFound",
    "SaleNotFound",
]
