"""
Application Layer: Historical Transaction Paginator
Pages a token's sales history newest-first by walking the ItemSold
event log backward in bounded block windows.
"""
from typing import List

import structlog

from src.application.ports import ISaleEventSource
from src.domain import (
    PaginationEnvelope,
    TokenId,
    Transaction,
    block_windows,
    page_count,
    page_slice,
)

logger = structlog.get_logger()


class HistoricalTransactionPaginator:
    """
    Recent pages only touch the newest window(s); deeper pages scan
    further back. Totals always come from the marketplace's own
    sales counter, never from the scan.
    """

    def __init__(self, source: ISaleEventSource, max_block_range: int = 5000) -> None:
        if max_block_range < 1:
            raise ValueError("max_block_range must be >= 1")
        self.source = source
        self.max_block_range = max_block_range

    async def paginate(self, token_id: TokenId, page: int, page_size: int) -> PaginationEnvelope[Transaction]:
        if page < 1 or page_size < 1:
            raise ValueError("page and page_size must be >= 1")

        bounds = await self.source.get_history_bounds(token_id)
        total = bounds.total_count
        pages = page_count(total, page_size)

        wanted = page_slice(total, page, page_size)
        if wanted is None:
            return PaginationEnvelope(items=[], total=total, page=page, page_size=page_size, page_count=pages)

        # Newest first across all scanned windows
        accumulated: List[Transaction] = []
        windows_scanned = 0
        for from_block, to_block in block_windows(bounds.start_block, bounds.latest_block, self.max_block_range):
            events = await self.source.get_sale_events(token_id, from_block, to_block)
            accumulated.extend(reversed(events))
            windows_scanned += 1
            if len(accumulated) >= wanted.end:
                break

        items = accumulated[wanted.offset:wanted.end]
        if len(items) < wanted.length:
            logger.warning(
                "history_scan_short",
                token_id=token_id,
                expected=wanted.length,
                found=len(items),
                start_block=bounds.start_block,
                latest_block=bounds.latest_block,
            )

        logger.debug(
            "history_page_loaded",
            token_id=token_id,
            page=page,
            page_size=page_size,
            windows=windows_scanned,
        )
        return PaginationEnvelope(items=items, total=total, page=page, page_size=page_size, page_count=pages)
