"""
Application Layer: Ports (Interfaces)
Defines how the Application layer expects to interact with the Infrastructure.
"""
from dataclasses import dataclass
from typing import List, Optional, Protocol

from src.domain import Address, TokenId, TokenMetadata, Transaction


@dataclass(frozen=True)
class HistoryBounds:
    """Sales-history summary kept by the marketplace for one token"""
    start_block: int
    latest_block: int
    start_timestamp: int
    latest_timestamp: int
    total_count: int


class IWalletSession(Protocol):
    """Account and signing capability supplied by the wallet"""

    @property
    def account(self) -> Optional[Address]:
        ...

    @property
    def signer_available(self) -> bool:
        ...


class ISaleEventSource(Protocol):
    """Read access to a token's sales summary and ItemSold event log"""

    async def get_history_bounds(self, token_id: TokenId) -> HistoryBounds:
        ...

    async def get_sale_events(self, token_id: TokenId, from_block: int, to_block: int) -> List[Transaction]:
        """Sales in [from_block, to_block], oldest first"""
        ...


class IMetadataResolver(Protocol):
    """Interface for off-chain metadata lookup"""

    async def fetch(self, cid: str) -> TokenMetadata:
        ...
