# utils.py

import random

import config
from engine import Outcome, Status


def get_color(allocated, block_id=None):
    """Return a color for allocated/free blocks."""
    if not allocated:
        return "#d3d3d3"  # light grey
    # pastel hue derived from the handle so a block keeps its color across reruns
    return f"hsl({(block_id or 0) * 47 % 360}, 70%, 75%)"


def random_block_sizes(count, low=config.RANDOM_BLOCK_MIN, high=config.RANDOM_BLOCK_MAX, rng=None):
    """Sizes for ``count`` partitions drawn uniformly from [low, high]."""
    rng = rng or random
    return [rng.randint(low, high) for _ in range(count)]


def describe(outcome: Outcome):
    """
    Turn an engine outcome into a log line.

    Returns:
        Tuple[str, str]: (message, kind) where kind is "info", "success" or "error"
    """
    if outcome.op == "initialize" and outcome.ok:
        return f"Initialized memory, total size: {outcome.size}", "info"

    if outcome.op == "allocate":
        if outcome.ok:
            block = outcome.block
            percent = (block.size - block.used) * 100 // block.size
            return (f"Allocated {outcome.size} -> block {outcome.handle} at {block.address}, "
                    f"fragmentation: {percent}%"), "info"
        if outcome.status is Status.INSUFFICIENT_SPACE:
            return f"Allocation failed, not enough space. Size: {outcome.size}", "error"

    if outcome.op == "free" and outcome.ok:
        return f"Freed block {outcome.handle} ({outcome.size} bytes)", "info"

    if outcome.op == "compact":
        if outcome.ok:
            return (f"Compacted toward {outcome.direction.value} end, "
                    f"{outcome.size} bytes free"), "success"
        return "Nothing to compact", "info"

    return f"{outcome.op.capitalize()} rejected: {outcome.reason}", "error"
