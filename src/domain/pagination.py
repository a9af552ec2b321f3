"""
Domain Layer: Pagination arithmetic
Page slicing over a newest-first sequence and backward block windows.
"""
from dataclasses import dataclass
from typing import Iterator, Optional, Tuple


@dataclass(frozen=True)
class PageSlice:
    """Position of a page inside the newest-first sequence"""
    offset: int
    length: int

    @property
    def end(self) -> int:
        return self.offset + self.length


def page_count(total: int, page_size: int) -> int:
    return -(-total // page_size)


def page_slice(total: int, page: int, page_size: int) -> Optional[PageSlice]:
    """
    Returns the newest-first slice for `page`, or None if the page
    starts at or past the end of the sequence.
    """
    if page < 1 or page_size < 1:
        raise ValueError("page and page_size must be >= 1")

    offset = (page - 1) * page_size
    if offset >= total:
        return None

    # Counted from the oldest end: the page covers [target_start, target_end)
    target_end = total - offset
    target_start = max(target_end - page_size, 0)
    return PageSlice(offset=offset, length=target_end - target_start)


def block_windows(start_block: int, latest_block: int, max_block_range: int) -> Iterator[Tuple[int, int]]:
    """
    Yields inclusive (from_block, to_block) windows walking backward
    from latest_block, never going below start_block.
    """
    if max_block_range < 1:
        raise ValueError("max_block_range must be >= 1")

    to_block = latest_block
    while to_block >= start_block:
        from_block = max(to_block - max_block_range + 1, start_block)
        yield from_block, to_block
        to_block = from_block - 1
