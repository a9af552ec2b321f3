"""
Domain Layer
"""
from .models import (
    Address,
    ApprovalRequired,
    ApprovalState,
    ContractRevert,
    InvalidPrice,
    InvalidRoyalty,
    LedgerError,
    Listing,
    MarketItem,
    Money,
    NetworkFailure,
    NotFound,
    NotListed,
    PaginationEnvelope,
    PendingRequestConflict,
    SigningUnavailable,
    Token,
    TokenId,
    TokenMetadata,
    Transaction,
    UserRejected,
    ZERO_ADDRESS,
    is_zero_address,
)
from .pagination import PageSlice, block_windows, page_count, page_slice

__all__ = [
    "Address",
    "ApprovalRequired",
    "ApprovalState",
    "ContractRevert",
    "InvalidPrice",
    "InvalidRoyalty",
    "LedgerError",
    "Listing",
    "MarketItem",
    "Money",
    "NetworkFailure",
    "NotFound",
    "NotListed",
    "PaginationEnvelope",
    "PendingRequestConflict",
    "SigningUnavailable",
    "Token",
    "TokenId",
    "TokenMetadata",
    "Transaction",
    "UserRejected",
    "ZERO_ADDRESS",
    "is_zero_address",
    "PageSlice",
    "block_windows",
    "page_count",
    "page_slice",
]
