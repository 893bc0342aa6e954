# partition.py

import logging
from dataclasses import dataclass
from enum import Enum
from typing import List, NamedTuple, Optional, Sequence

from placement import PlacementPolicy, select_block

logger = logging.getLogger(__name__)


# -----------------------------
# Errors
# -----------------------------
class PartitionError(Exception):
    """Base class for rejected table operations. A rejected call never mutates the table."""


class InvalidSizeError(PartitionError, ValueError):
    pass


class InvalidIndexError(PartitionError, IndexError):
    pass


class NotAllocatedError(PartitionError):
    pass


class CompactionDirection(str, Enum):
    LOW = "low"
    HIGH = "high"


class BlockSnapshot(NamedTuple):
    """Read-only copy of a block, handed out for rendering."""
    address: int
    size: int
    occupied: bool
    used: int = 0
    block_id: Optional[int] = None


def _check_size(size):
    if isinstance(size, bool) or not isinstance(size, int) or size <= 0:
        raise InvalidSizeError(f"size must be a positive integer, got {size!r}")


@dataclass
class MemoryBlock:
    """
    A contiguous address range in the simulated space.

    Attributes:
        address (int): Start offset of the range
        size (int): Length of the range, always positive
        occupied (bool): True while the range is allocated
        used (int): Bytes actually requested; equals size unless partitions are fixed
        block_id (Optional[int]): Handle issued when the block was allocated
    """
    address: int
    size: int
    occupied: bool = False
    used: int = 0
    block_id: Optional[int] = None

    def __post_init__(self):
        _check_size(self.size)

    def occupy(self, block_id, used=None):
        self.occupied = True
        self.block_id = block_id
        self.used = self.size if used is None else used

    def release(self):
        self.occupied = False
        self.block_id = None
        self.used = 0

    @property
    def idle(self):
        """Bytes allocated but not requested (internal fragmentation)."""
        return self.size - self.used if self.occupied else 0

    def snapshot(self) -> BlockSnapshot:
        return BlockSnapshot(self.address, self.size, self.occupied, self.used, self.block_id)

    def __repr__(self):
        state = "A" if self.occupied else "F"
        return f"[{state}|{self.address}|{self.size}]"


class PartitionTable:
    """
    Ordered, gap-free sequence of blocks covering ``[0, total_size)``.

    The table is the only owner of its blocks. Callers refer to blocks by
    position or by the ``block_id`` handed out on allocation, and read the
    layout through :meth:`snapshot`.

    Args:
        sizes: Initial partition sizes, laid out from address 0, all free.
        policy: Placement policy used by :meth:`allocate`.
        split: When False, partitions are fixed: an allocation takes the whole
            matched block and only records how much of it was requested.
    """

    def __init__(self, sizes: Sequence[int], policy=PlacementPolicy.FIRST_FIT, split: bool = True):
        if len(sizes) == 0:
            raise InvalidSizeError("at least one partition is required")
        for size in sizes:
            _check_size(size)

        self.policy = PlacementPolicy(policy)
        self.split = split
        self._blocks: List[MemoryBlock] = []
        address = 0
        for size in sizes:
            self._blocks.append(MemoryBlock(address, size))
            address += size
        self._total_size = address
        self._next_id = 1

    def __len__(self):
        return len(self._blocks)

    def __repr__(self):
        return f"PartitionTable({self.policy.value}, {self._blocks!r})"

    @property
    def total_size(self) -> int:
        return self._total_size

    # -----------------------------
    # Queries
    # -----------------------------
    def snapshot(self) -> List[BlockSnapshot]:
        return [block.snapshot() for block in self._blocks]

    def block_at(self, index: int) -> BlockSnapshot:
        self._check_index(index)
        return self._blocks[index].snapshot()

    def index_of(self, block_id: int) -> int:
        """Resolve an allocation handle to the block's current position."""
        for i, block in enumerate(self._blocks):
            if block.occupied and block.block_id == block_id:
                return i
        raise InvalidIndexError(f"no allocated block with id {block_id}")

    def find(self, size: int) -> Optional[int]:
        _check_size(size)
        return select_block(self._blocks, size, self.policy)

    @property
    def is_full(self) -> bool:
        return all(block.occupied for block in self._blocks)

    @property
    def free_space(self) -> int:
        return sum(b.size for b in self._blocks if not b.occupied)

    @property
    def occupied_space(self) -> int:
        return sum(b.size for b in self._blocks if b.occupied)

    @property
    def idle_space(self) -> int:
        return sum(b.idle for b in self._blocks)

    @property
    def largest_free(self) -> int:
        return max((b.size for b in self._blocks if not b.occupied), default=0)

    def _check_index(self, index):
        if isinstance(index, bool) or not isinstance(index, int) or not 0 <= index < len(self._blocks):
            raise InvalidIndexError(f"index {index!r} out of range [0, {len(self._blocks)})")

    # -----------------------------
    # Allocation (split)
    # -----------------------------
    def allocate(self, size: int) -> Optional[int]:
        """
        Place a request of ``size`` bytes.

        Returns:
            Optional[int]: Index of the newly occupied block, or None when no
            free block is large enough (the table is left untouched).

        Raises:
            InvalidSizeError: If size is not a positive integer
        """
        index = self.find(size)
        if index is None:
            logger.debug("%s: no free block for %d bytes", self.policy.value, size)
            return None

        block = self._blocks[index]
        block_id = self._next_id
        self._next_id += 1

        # Perfect fit, or a fixed partition taken whole
        if block.size == size or not self.split:
            block.occupy(block_id, used=size)
            logger.debug("allocated block %d in place at %d (%d/%d bytes)",
                         block_id, block.address, size, block.size)
            return index

        # Carve the low end; the free remainder keeps the high end
        carved = MemoryBlock(block.address, size)
        carved.occupy(block_id)
        block.address += size
        block.size -= size
        self._blocks.insert(index, carved)
        logger.debug("split block at %d: allocated %d bytes as block %d, %d bytes left free",
                     carved.address, size, block_id, block.size)
        return index

    # -----------------------------
    # Deallocation (merge)
    # -----------------------------
    def free(self, index: int, block_id: Optional[int] = None) -> int:
        """
        Release the block at ``index`` and coalesce it with free neighbours.

        The previous neighbour is merged first; the next-neighbour check then
        runs against the already enlarged block.

        Args:
            index: Current position of the block.
            block_id: Optional handle; when given it must match the block at
                ``index``, otherwise the index is treated as stale.

        Returns:
            int: Position of the resulting free block.

        Raises:
            InvalidIndexError: If index is out of range or stale
            NotAllocatedError: If the block is already free
        """
        self._check_index(index)
        block = self._blocks[index]
        if block_id is not None and block.block_id != block_id:
            raise InvalidIndexError(f"stale index {index}: block {block_id} is not there")
        if not block.occupied:
            raise NotAllocatedError(f"block at index {index} is already free")

        logger.debug("releasing block %d at %d (%d bytes)", block.block_id, block.address, block.size)
        block.release()

        if index > 0 and not self._blocks[index - 1].occupied:
            previous = self._blocks[index - 1]
            previous.size += block.size
            del self._blocks[index]
            index -= 1
            block = previous

        if index < len(self._blocks) - 1 and not self._blocks[index + 1].occupied:
            block.size += self._blocks[index + 1].size
            del self._blocks[index + 1]

        return index

    def free_block(self, block_id: int) -> int:
        return self.free(self.index_of(block_id), block_id)

    # -----------------------------
    # Compaction
    # -----------------------------
    def can_compact(self, direction=CompactionDirection.LOW) -> bool:
        direction = CompactionDirection(direction)
        if any(block.idle for block in self._blocks):
            return True

        # Walk toward the compaction target, skipping occupied blocks
        blocks = self._blocks if direction is CompactionDirection.LOW else self._blocks[::-1]
        first_free = next((i for i, b in enumerate(blocks) if not b.occupied), None)
        if first_free is None or first_free == len(blocks) - 1:
            return False
        return any(b.occupied for b in blocks[first_free + 1:])

    def compact(self, direction=CompactionDirection.LOW) -> bool:
        """
        Slide occupied blocks to one end and gather all free space into one block.

        Occupied blocks keep their relative order and handles, and shrink to
        their used size. Returns False (and changes nothing) when
        :meth:`can_compact` says there is nothing to gain.
        """
        direction = CompactionDirection(direction)
        if not self.can_compact(direction):
            return False

        occupied = [b for b in self._blocks if b.occupied]
        total_occupied = sum(b.used for b in occupied)
        free_size = self._total_size - total_occupied

        if direction is CompactionDirection.LOW:
            address = 0
            free_address = total_occupied
        else:
            address = free_size
            free_address = 0
        hole = MemoryBlock(free_address, free_size) if free_size else None

        for block in occupied:
            block.address = address
            block.size = block.used
            address += block.size

        if hole is None:
            self._blocks = occupied
        elif direction is CompactionDirection.LOW:
            self._blocks = occupied + [hole]
        else:
            self._blocks = [hole] + occupied

        logger.debug("compacted %d occupied blocks toward %s end, %d bytes free",
                     len(occupied), direction.value, free_size)
        return True
