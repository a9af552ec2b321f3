"""
Infrastructure Layer: Ledger Client
Facade over the token and marketplace contracts.

Mutations submit, wait for one confirmation and return; they never patch
local state. Callers re-read through the query methods afterwards.
"""
import asyncio
from decimal import Decimal
from typing import Any, Dict, Iterable, List, Optional, Sequence, Union

import structlog
from web3 import AsyncWeb3
from web3.exceptions import ContractLogicError
from web3.logs import DISCARD
from web3.types import TxReceipt

from src.application.cache import KeyedCache, approve_all_key, approve_single_key
from src.application.history import HistoricalTransactionPaginator
from src.application.ports import HistoryBounds, IWalletSession
from src.domain import (
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
    NotFound,
    NotListed,
    PaginationEnvelope,
    SigningUnavailable,
    Token,
    TokenId,
    Transaction,
)
from src.infrastructure.connection import ConnectionManager, LedgerSession
from src.infrastructure.contract_results import (
    HistoricalSummaryResult,
    ItemSoldEvent,
    ListingResult,
    TokenInfoResult,
)
from src.infrastructure.errors import ledger_call

logger = structlog.get_logger()

PriceInput = Union[Money, Decimal, int, float, str]


def _as_money(price: PriceInput) -> Money:
    if isinstance(price, Money):
        return price
    return Money(Decimal(str(price)))


def _same_address(left: Optional[str], right: Optional[str]) -> bool:
    return bool(left) and bool(right) and str(left).lower() == str(right).lower()


class LedgerClient:
    """
    One instance per caller session. Also serves as the ISaleEventSource
    behind its own history paginator.
    """

    def __init__(
        self,
        connection: ConnectionManager,
        cache: Optional[KeyedCache] = None,
        max_block_range: int = 5000,
        history_page_size: int = 10,
    ) -> None:
        self.connection = connection
        self.cache = cache if cache is not None else KeyedCache()
        self.history_page_size = history_page_size
        self.paginator = HistoricalTransactionPaginator(self, max_block_range=max_block_range)

    def switch_wallet(self, wallet: IWalletSession) -> None:
        self.connection.switch_wallet(wallet)
        self.cache.clear()

    # --- Mutations ---

    async def mint(self, cid: str, royalty_fee: int) -> TokenId:
        if not 0 <= royalty_fee <= 100:
            raise InvalidRoyalty(royalty_fee)

        session = self.connection.require_signer()
        token = session.contracts.token
        receipt = await self._submit(session, "mint", token.functions.mint(cid, royalty_fee), cid=cid)

        minted = token.events.NFTMinted().process_receipt(receipt, errors=DISCARD)
        if not minted:
            raise ContractRevert("Mint event not found in receipt")

        token_id = TokenId(int(minted[0]["args"]["tokenId"]))
        logger.info("token_minted", token_id=token_id, cid=cid, royalty_fee=royalty_fee)
        return token_id

    async def buy(self, token_id: TokenId) -> bool:
        session = self.connection.require_signer()
        listing = await self.get_listing_info(token_id)
        if not listing.is_active or listing.seller is None:
            raise NotListed(token_id)

        price_wei = listing.price.to_wei()
        await self._submit(
            session,
            "buy",
            session.contracts.marketplace.functions.buyItem(session.token_address, token_id),
            value=price_wei,
            token_id=token_id,
        )
        # A sale clears the seller's single-token approval on the ledger
        self.cache.invalidate(approve_single_key(listing.seller, token_id))
        logger.info("token_bought", token_id=token_id, price_wei=price_wei)
        return True

    async def list(self, token_id: TokenId, price: PriceInput) -> bool:
        amount = _as_money(price)
        if not amount.is_positive:
            raise InvalidPrice(amount.amount)

        session = self.connection.require_signer()
        await self._ensure_approved(session, token_id)
        fee = await self._listing_fee_wei(session)

        await self._submit(
            session,
            "list",
            session.contracts.marketplace.functions.listItem(session.token_address, token_id, amount.to_wei()),
            value=fee,
            token_id=token_id,
        )
        logger.info("token_listed", token_id=token_id, price=str(amount.amount))
        return True

    async def delist(self, token_id: TokenId) -> bool:
        session = self.connection.require_signer()
        await self._submit(
            session,
            "delist",
            session.contracts.marketplace.functions.cancelListing(session.token_address, token_id),
            token_id=token_id,
        )
        logger.info("token_delisted", token_id=token_id)
        return True

    async def update_price(self, token_id: TokenId, new_price: PriceInput) -> bool:
        amount = _as_money(new_price)
        if not amount.is_positive:
            raise InvalidPrice(amount.amount)

        session = self.connection.require_signer()
        await self._submit(
            session,
            "update_price",
            session.contracts.marketplace.functions.updateListingPrice(
                session.token_address, token_id, amount.to_wei()
            ),
            token_id=token_id,
        )
        logger.info("listing_price_updated", token_id=token_id, price=str(amount.amount))
        return True

    async def transfer(self, from_address: str, to_address: str, token_id: TokenId) -> bool:
        session = self.connection.require_signer()
        sender = AsyncWeb3.to_checksum_address(from_address)
        recipient = AsyncWeb3.to_checksum_address(to_address)

        await self._submit(
            session,
            "transfer",
            session.contracts.token.functions.transfer(sender, recipient, token_id),
            token_id=token_id,
            to=recipient,
        )
        self.cache.invalidate(approve_single_key(sender, token_id))
        logger.info("token_transferred", token_id=token_id, sender=sender, recipient=recipient)
        return True

    async def approve_single(self, token_id: TokenId) -> bool:
        session = self.connection.require_signer()
        await self._submit(
            session,
            "approve_single",
            session.contracts.token.functions.approve(session.marketplace_address, token_id),
            token_id=token_id,
        )
        self.cache.write_through(approve_single_key(str(session.account), token_id), True)
        return True

    async def approve_all(self, approved: bool) -> bool:
        session = self.connection.require_signer()
        await self._submit(
            session,
            "approve_all",
            session.contracts.token.functions.setApprovalForAll(session.marketplace_address, approved),
            approved=approved,
        )
        self.cache.write_through(approve_all_key(str(session.account)), approved)
        return True

    # --- Queries ---

    async def get_token(self, token_id: TokenId) -> Token:
        session = self.connection.get_session()
        async with ledger_call("get_token", token_id=token_id):
            try:
                raw = await session.contracts.token.functions.getTokenInfoById(token_id).call()
            except ContractLogicError as exc:
                raise NotFound(token_id) from exc

        result = TokenInfoResult.from_raw(raw)
        if not result.exists:
            raise NotFound(token_id)
        return result.to_domain()

    async def get_info(self, token_id: TokenId) -> MarketItem:
        token = await self.get_token(token_id)
        listing = await self.get_listing_info(token_id)
        return MarketItem(token=token, listing=listing)

    async def get_listing_info(self, token_id: TokenId) -> Listing:
        """Latest listing; a token that was never listed yields the not-listed default."""
        session = self.connection.get_session()
        try:
            result = await self._read_listing(session, token_id)
            return result.to_domain(token_id)
        except ContractRevert as exc:
            logger.warning("listing_lookup_reverted", token_id=token_id, reason=exc.reason)
            return Listing.not_listed(token_id)

    async def is_listed(self, token_id: TokenId) -> bool:
        listing = await self.get_listing_info(token_id)
        return listing.is_active

    async def get_by_owner(self, owner: str) -> List[MarketItem]:
        session = self.connection.get_session()
        address = AsyncWeb3.to_checksum_address(owner)
        async with ledger_call("get_by_owner", owner=address):
            raw = await session.contracts.token.functions.getTokenInfoByOwner(address).call()
        return await self._with_listings(TokenInfoResult.from_raw(item) for item in raw)

    async def get_by_creator(self, creator: str) -> List[MarketItem]:
        session = self.connection.get_session()
        address = AsyncWeb3.to_checksum_address(creator)
        async with ledger_call("get_by_creator", creator=address):
            raw = await session.contracts.token.functions.getTokenInfoByCreator(address).call()
        return await self._with_listings(TokenInfoResult.from_raw(item) for item in raw)

    async def get_marketplace_listings(self) -> List[MarketItem]:
        """Active listings of this token contract, in marketplace order."""
        session = self.connection.get_session()
        async with ledger_call("get_marketplace_listings"):
            raw = await session.contracts.marketplace.functions.getAllListings().call()

        active = [
            listing
            for listing in (ListingResult.from_raw(item) for item in raw)
            if listing.is_active and _same_address(listing.token_contract, session.token_address)
        ]

        tokens = await asyncio.gather(
            *(self.get_token(TokenId(listing.token_id)) for listing in active),
            return_exceptions=True,
        )

        items: List[MarketItem] = []
        for listing, token in zip(active, tokens):
            if isinstance(token, BaseException):
                logger.warning("listed_token_lookup_failed", token_id=listing.token_id, error=str(token))
                continue
            items.append(MarketItem(token=token, listing=listing.to_domain()))
        return items

    async def get_listing_fee(self) -> Money:
        session = self.connection.get_session()
        return Money.from_wei(await self._listing_fee_wei(session))

    async def get_history(
        self, token_id: TokenId, page: int = 1, page_size: Optional[int] = None
    ) -> PaginationEnvelope[Transaction]:
        return await self.paginator.paginate(token_id, page, page_size or self.history_page_size)

    # --- Approvals ---

    async def is_approved_for_all(self, owner: Optional[str] = None) -> bool:
        session = self.connection.get_session()
        address = self._owner(session, owner)

        async def load() -> bool:
            async with ledger_call("is_approved_for_all", owner=address):
                return bool(
                    await session.contracts.token.functions.isApprovedForAll(
                        address, session.marketplace_address
                    ).call()
                )

        return await self.cache.get(approve_all_key(address), load)

    async def is_token_approved(self, token_id: TokenId, owner: Optional[str] = None) -> bool:
        session = self.connection.get_session()
        address = self._owner(session, owner)

        async def load() -> bool:
            async with ledger_call("is_token_approved", token_id=token_id):
                approved = await session.contracts.token.functions.getApproved(token_id).call()
            return _same_address(approved, session.marketplace_address)

        return await self.cache.get(approve_single_key(address, token_id), load)

    async def needs_approval(self, token_id: TokenId, owner: Optional[str] = None) -> bool:
        """
        True unless the marketplace is known to be approved. Any failure
        to find out counts as not approved.
        """
        try:
            return not await self._approval_granted(token_id, owner)
        except LedgerError as exc:
            logger.warning("approval_check_failed", token_id=token_id, reason=exc.reason)
            return True

    async def get_approval_state(self, owner: str, token_ids: Sequence[TokenId] = ()) -> ApprovalState:
        address = AsyncWeb3.to_checksum_address(owner)
        all_approved = await self.is_approved_for_all(address)
        flags = await asyncio.gather(*(self.is_token_approved(token_id, address) for token_id in token_ids))
        return ApprovalState(
            owner=Address(address),
            all_approved=all_approved,
            token_approvals=dict(zip(token_ids, flags)),
        )

    # --- ISaleEventSource ---

    async def get_history_bounds(self, token_id: TokenId) -> HistoryBounds:
        session = self.connection.get_session()
        async with ledger_call("get_history_bounds", token_id=token_id):
            raw = await session.contracts.marketplace.functions.getHistoricalTransaction(
                session.token_address, token_id
            ).call()
        return HistoricalSummaryResult.from_raw(raw).to_bounds()

    async def get_sale_events(self, token_id: TokenId, from_block: int, to_block: int) -> List[Transaction]:
        session = self.connection.get_session()
        async with ledger_call("get_sale_events", token_id=token_id, from_block=from_block, to_block=to_block):
            logs = await session.contracts.marketplace.events.ItemSold().get_logs(
                argument_filters={"tokenContract": session.token_address, "tokenId": token_id},
                from_block=from_block,
                to_block=to_block,
            )

        ordered = sorted(logs, key=lambda log: (log["blockNumber"], log.get("logIndex", 0)))
        return [ItemSoldEvent.from_log(log).to_domain() for log in ordered]

    # --- Internals ---

    def _owner(self, session: LedgerSession, owner: Optional[str]) -> str:
        address = owner or session.account
        if not address:
            raise SigningUnavailable("An owner address is required for approval checks")
        return AsyncWeb3.to_checksum_address(address)

    async def _approval_granted(self, token_id: TokenId, owner: Optional[str]) -> bool:
        if await self.is_approved_for_all(owner):
            return True
        return await self.is_token_approved(token_id, owner)

    async def _ensure_approved(self, session: LedgerSession, token_id: TokenId) -> None:
        owner = self._owner(session, None)
        if await self._approval_granted(token_id, owner):
            return

        # A cached "no" may be stale; confirm with the ledger before refusing
        self.cache.invalidate(approve_all_key(owner))
        self.cache.invalidate(approve_single_key(owner, token_id))
        if not await self._approval_granted(token_id, owner):
            raise ApprovalRequired(token_id)

    async def _read_listing(self, session: LedgerSession, token_id: TokenId) -> ListingResult:
        async with ledger_call("get_listing", token_id=token_id):
            raw = await session.contracts.marketplace.functions.getListingById(
                session.token_address, token_id
            ).call()
        return ListingResult.from_raw(raw)

    async def _listing_fee_wei(self, session: LedgerSession) -> int:
        async with ledger_call("get_listing_fee"):
            return int(await session.contracts.marketplace.functions.getListingFee().call())

    async def _submit(
        self,
        session: LedgerSession,
        operation: str,
        function: Any,
        value: int = 0,
        **context: Any,
    ) -> TxReceipt:
        """Send one transaction and wait for its receipt. Never retried."""
        tx_params: Dict[str, Any] = {"from": session.account}
        if value:
            tx_params["value"] = value

        async with ledger_call(operation, **context):
            tx_hash = await function.transact(tx_params)
            logger.info("transaction_submitted", operation=operation, tx_hash=AsyncWeb3.to_hex(tx_hash), **context)
            receipt = await session.web3.eth.wait_for_transaction_receipt(tx_hash)

        if receipt["status"] != 1:
            logger.warning("transaction_reverted", operation=operation, tx_hash=AsyncWeb3.to_hex(tx_hash), **context)
            raise ContractRevert(f"{operation} transaction reverted")

        logger.info("transaction_confirmed", operation=operation, block=receipt["blockNumber"], **context)
        return receipt

    async def _with_listings(self, results: Iterable[TokenInfoResult]) -> List[MarketItem]:
        """Pairs tokens with their listings; lookups run concurrently and are filtered once all settle."""
        tokens = [result.to_domain() for result in results]
        listings = await asyncio.gather(
            *(self.get_listing_info(token.id) for token in tokens),
            return_exceptions=True,
        )

        items: List[MarketItem] = []
        for token, listing in zip(tokens, listings):
            if isinstance(listing, BaseException):
                logger.warning("listing_lookup_failed", token_id=token.id, error=str(listing))
                continue
            items.append(MarketItem(token=token, listing=listing))
        return items
