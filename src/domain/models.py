"""
Domain Layer: Entities and Value Objects
Pure Python, No external dependencies.
"""
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, Generic, List, NewType, Optional, TypeVar

# --- Value Objects ---

TokenId = NewType("TokenId", int)
Address = NewType("Address", str)

ZERO_ADDRESS = Address("0x0000000000000000000000000000000000000000")
WEI_PER_ETHER = Decimal(10) ** 18

T = TypeVar("T")


def is_zero_address(address: Optional[str]) -> bool:
    return not address or int(address, 16) == 0


@dataclass(frozen=True)
class Money:
    """Immutable Money Value Object"""
    amount: Decimal
    currency: str = "ETH"

    @classmethod
    def from_wei(cls, wei: int) -> "Money":
        return cls(Decimal(wei) / WEI_PER_ETHER)

    def to_wei(self) -> int:
        """Whole wei; sub-wei fractions are truncated."""
        return int(self.amount * WEI_PER_ETHER)

    @property
    def is_positive(self) -> bool:
        return self.amount > 0


# --- Entities ---

@dataclass(frozen=True)
class Token:
    """Token Entity (as recorded by the token contract)"""
    id: TokenId
    cid: str
    owner: Address
    creator: Address
    minted_at: datetime
    royalty_fee: int
    last_sold_price: Money = field(default_factory=lambda: Money(Decimal(0)))

    def __post_init__(self) -> None:
        if not 0 <= self.royalty_fee <= 100:
            raise InvalidRoyalty(self.royalty_fee)


@dataclass(frozen=True)
class Listing:
    """
    Marketplace listing for a token.
    A listing ends either canceled or sold, never both.
    """
    token_id: TokenId
    seller: Optional[Address]
    price: Money
    canceled_at: Optional[datetime] = None
    sold_at: Optional[datetime] = None

    def __post_init__(self) -> None:
        if self.canceled_at is not None and self.sold_at is not None:
            raise ValueError("Listing cannot be both canceled and sold")

    @property
    def is_active(self) -> bool:
        return (
            not is_zero_address(self.seller)
            and self.canceled_at is None
            and self.sold_at is None
        )

    @classmethod
    def not_listed(cls, token_id: TokenId) -> "Listing":
        return cls(token_id=token_id, seller=None, price=Money(Decimal(0)))


@dataclass(frozen=True)
class MarketItem:
    """A token together with its current listing"""
    token: Token
    listing: Listing

    @property
    def is_listed(self) -> bool:
        return self.listing.is_active

    @property
    def price(self) -> Money:
        return self.listing.price if self.listing.is_active else Money(Decimal(0))


@dataclass
class ApprovalState:
    """Marketplace approvals granted by one owner"""
    owner: Address
    all_approved: bool = False
    token_approvals: Dict[TokenId, bool] = field(default_factory=dict)

    def is_approved(self, token_id: TokenId) -> bool:
        return self.all_approved or self.token_approvals.get(token_id, False)


@dataclass(frozen=True)
class Transaction:
    """Historical sale record, taken from an ItemSold event"""
    transaction_hash: str
    token_id: TokenId
    seller: Address
    buyer: Address
    price: Money
    sold_at: datetime
    block_number: int = 0


@dataclass(frozen=True)
class TokenMetadata:
    """Off-chain descriptive metadata addressed by CID"""
    cid: str
    name: str
    description: str
    image: str
    category: str = "Unknown"
    attributes: List[Dict[str, Any]] = field(default_factory=list)


@dataclass(frozen=True)
class PaginationEnvelope(Generic[T]):
    items: List[T]
    total: int
    page: int
    page_size: int
    page_count: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            "items": list(self.items),
            "total": self.total,
            "page": self.page,
            "pageSize": self.page_size,
            "pageCount": self.page_count,
        }


# --- Exceptions ---

class LedgerError(Exception):
    """Base ledger exception. `reason` is short and safe to show to a user."""

    default_reason = "Ledger operation failed"

    def __init__(self, reason: Optional[str] = None) -> None:
        self.reason = reason or self.default_reason
        super().__init__(self.reason)


class SigningUnavailable(LedgerError):
    """Raised when a mutating call is attempted without a signer"""
    default_reason = "A connected wallet is required for this action"


class UserRejected(LedgerError):
    default_reason = "Request was rejected in the wallet"


class PendingRequestConflict(LedgerError):
    default_reason = "Another wallet request is already pending"


class ContractRevert(LedgerError):
    """Remote business-rule violation"""
    default_reason = "Transaction reverted"


class InvalidRoyalty(ContractRevert):
    def __init__(self, royalty_fee: int) -> None:
        super().__init__(f"Royalty fee must be between 0 and 100, got {royalty_fee}")


class InvalidPrice(ContractRevert):
    def __init__(self, price: Decimal) -> None:
        super().__init__(f"Price must be greater than zero, got {price}")


class NotListed(ContractRevert):
    def __init__(self, token_id: TokenId) -> None:
        super().__init__(f"Token {token_id} is not listed for sale")


class ApprovalRequired(ContractRevert):
    def __init__(self, token_id: TokenId) -> None:
        super().__init__(f"Marketplace is not approved to transfer token {token_id}")


class NetworkFailure(LedgerError):
    default_reason = "Ledger endpoint is unreachable"


class NotFound(LedgerError):
    def __init__(self, token_id: TokenId) -> None:
        super().__init__(f"Token {token_id} does not exist")
