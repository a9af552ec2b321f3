"""
Infrastructure: Contract Result Structs
Raw web3 return values are positional tuples; they are converted to named
results here, once, and mapped to domain records.
"""
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Mapping, Optional, Sequence

from src.application.ports import HistoryBounds
from src.domain import (
    Address,
    ContractRevert,
    Listing,
    Money,
    Token,
    TokenId,
    Transaction,
    is_zero_address,
)


def to_datetime(timestamp: int) -> Optional[datetime]:
    """Ledger timestamps are unix seconds; zero means unset."""
    if not timestamp:
        return None
    return datetime.fromtimestamp(int(timestamp), tz=timezone.utc)


@dataclass(frozen=True)
class TokenInfoResult:
    """getTokenInfoById / getTokenInfoByOwner / getTokenInfoByCreator element"""
    token_id: int
    token_uri: str
    owner: str
    creator: str
    minted_at: int
    royalty_fee: int
    last_sold_price_wei: int

    @classmethod
    def from_raw(cls, raw: Sequence[Any]) -> "TokenInfoResult":
        token_id, token_uri, owner, creator, minted_at, royalty_fee, last_sold_price = raw
        return cls(
            token_id=int(token_id),
            token_uri=str(token_uri),
            owner=str(owner),
            creator=str(creator),
            minted_at=int(minted_at),
            royalty_fee=int(royalty_fee),
            last_sold_price_wei=int(last_sold_price),
        )

    @property
    def exists(self) -> bool:
        return not is_zero_address(self.owner)

    def to_domain(self) -> Token:
        return Token(
            id=TokenId(self.token_id),
            cid=self.token_uri,
            owner=Address(self.owner),
            creator=Address(self.creator),
            minted_at=to_datetime(self.minted_at) or datetime.fromtimestamp(0, tz=timezone.utc),
            royalty_fee=self.royalty_fee,
            last_sold_price=Money.from_wei(self.last_sold_price_wei),
        )


@dataclass(frozen=True)
class ListingResult:
    """getListingById / getAllListings element"""
    token_contract: str
    token_id: int
    seller: str
    price_wei: int
    canceled_at: int
    sold_at: int

    @classmethod
    def from_raw(cls, raw: Sequence[Any]) -> "ListingResult":
        token_contract, token_id, seller, price, canceled_at, sold_at = raw
        return cls(
            token_contract=str(token_contract),
            token_id=int(token_id),
            seller=str(seller),
            price_wei=int(price),
            canceled_at=int(canceled_at),
            sold_at=int(sold_at),
        )

    @property
    def is_active(self) -> bool:
        return not is_zero_address(self.seller) and self.canceled_at == 0 and self.sold_at == 0

    def to_domain(self, token_id: Optional[TokenId] = None) -> Listing:
        # Never-listed tokens come back as an all-zero struct
        resolved_id = token_id if token_id is not None else TokenId(self.token_id)
        if is_zero_address(self.seller):
            return Listing.not_listed(resolved_id)

        canceled_at = to_datetime(self.canceled_at)
        sold_at = to_datetime(self.sold_at)
        if canceled_at is not None and sold_at is not None:
            raise ContractRevert(f"Listing for token {resolved_id} reports both canceledAt and soldAt")

        return Listing(
            token_id=resolved_id,
            seller=Address(self.seller),
            price=Money.from_wei(self.price_wei),
            canceled_at=canceled_at,
            sold_at=sold_at,
        )


@dataclass(frozen=True)
class HistoricalSummaryResult:
    """getHistoricalTransaction"""
    start_block: int
    latest_block: int
    start_timestamp: int
    latest_timestamp: int
    total_count: int

    @classmethod
    def from_raw(cls, raw: Sequence[Any]) -> "HistoricalSummaryResult":
        start_block, latest_block, start_timestamp, latest_timestamp, total_count = raw
        return cls(
            start_block=int(start_block),
            latest_block=int(latest_block),
            start_timestamp=int(start_timestamp),
            latest_timestamp=int(latest_timestamp),
            total_count=int(total_count),
        )

    def to_bounds(self) -> HistoryBounds:
        return HistoryBounds(
            start_block=self.start_block,
            latest_block=self.latest_block,
            start_timestamp=self.start_timestamp,
            latest_timestamp=self.latest_timestamp,
            total_count=self.total_count,
        )


@dataclass(frozen=True)
class ItemSoldEvent:
    """Decoded ItemSold log entry"""
    transaction_hash: str
    block_number: int
    token_id: int
    seller: str
    buyer: str
    price_wei: int
    timestamp: int

    @classmethod
    def from_log(cls, log: Mapping[str, Any]) -> "ItemSoldEvent":
        args = log["args"]
        tx_hash = log["transactionHash"]
        if isinstance(tx_hash, (bytes, bytearray)):
            tx_hash = "0x" + bytes(tx_hash).hex()
        return cls(
            transaction_hash=str(tx_hash),
            block_number=int(log["blockNumber"]),
            token_id=int(args["tokenId"]),
            seller=str(args["seller"]),
            buyer=str(args["buyer"]),
            price_wei=int(args["price"]),
            timestamp=int(args["timestamp"]),
        )

    def to_domain(self) -> Transaction:
        return Transaction(
            transaction_hash=self.transaction_hash,
            token_id=TokenId(self.token_id),
            seller=Address(self.seller),
            buyer=Address(self.buyer),
            price=Money.from_wei(self.price_wei),
            sold_at=to_datetime(self.timestamp) or datetime.fromtimestamp(0, tz=timezone.utc),
            block_number=self.block_number,
        )
