# placement.py

from enum import Enum
from typing import Optional, Sequence


class PlacementPolicy(str, Enum):
    FIRST_FIT = "First-Fit"
    BEST_FIT = "Best-Fit"
    WORST_FIT = "Worst-Fit"


def _eligible(block, req):
    return not block.occupied and block.size >= req


# -----------------------------
# Algorithms
# -----------------------------
def _first_fit(blocks, req):
    for i, block in enumerate(blocks):
        if _eligible(block, req):
            return i
    return None


def _best_fit(blocks, req):
    best_index = None
    best_size = float('inf')

    # strict '<' keeps the lowest address among equal sizes
    for i, block in enumerate(blocks):
        if _eligible(block, req) and block.size < best_size:
            best_size = block.size
            best_index = i

    return best_index


def _worst_fit(blocks, req):
    worst_index = None
    worst_size = -1

    for i, block in enumerate(blocks):
        if _eligible(block, req) and block.size > worst_size:
            worst_size = block.size
            worst_index = i

    return worst_index


_STRATEGIES = {
    PlacementPolicy.FIRST_FIT: _first_fit,
    PlacementPolicy.BEST_FIT: _best_fit,
    PlacementPolicy.WORST_FIT: _worst_fit,
}


def select_block(blocks: Sequence, size: int, policy: PlacementPolicy) -> Optional[int]:
    """
    Pick the free block that should receive a request of ``size`` bytes.

    Args:
        blocks: Blocks in ascending address order.
        size: Requested size; the caller has already checked it is positive.
        policy: Which placement rule to apply.

    Returns:
        Optional[int]: Index of the chosen block, or None if nothing fits.
    """
    return _STRATEGIES[PlacementPolicy(policy)](blocks, size)
