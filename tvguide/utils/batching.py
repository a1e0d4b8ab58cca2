"""
Batching utilities

Splits station ids into fixed-size groups for grid requests.
"""
from collections.abc import Sequence
from typing import TypeVar

from tvguide.config import CHANNEL_BATCH_SIZE

T = TypeVar("T")


def chunk_channels(items: Sequence[T], size: int = CHANNEL_BATCH_SIZE) -> list[list[T]]:
    """
    Split items into ordered batches of at most `size` elements

    Args:
        items: Ordered station ids (or any sequence)
        size: Maximum batch length

    Returns:
        List of batches; concatenated they equal `items`, only the last may be shorter

    Raises:
        ValueError: If size is not positive
    """
    if size <= 0:
        raise ValueError(f"batch size must be > 0, got {size}")
    return [list(items[i:i + size]) for i in range(0, len(items), size)]
