# engine.py

import logging
import random
from dataclasses import dataclass
from enum import Enum
from typing import Dict, Iterator, List, Optional, Sequence

import config
from partition import (
    BlockSnapshot, CompactionDirection, InvalidIndexError, InvalidSizeError,
    PartitionError, PartitionTable,
)
from placement import PlacementPolicy

logger = logging.getLogger(__name__)


class Status(str, Enum):
    OK = "ok"
    INSUFFICIENT_SPACE = "insufficient_space"
    INVALID_SIZE = "invalid_size"
    INVALID_INDEX = "invalid_index"
    NOT_ALLOCATED = "not_allocated"
    NOTHING_TO_COMPACT = "nothing_to_compact"


def _status_for(error: PartitionError) -> Status:
    if isinstance(error, InvalidSizeError):
        return Status.INVALID_SIZE
    if isinstance(error, InvalidIndexError):
        return Status.INVALID_INDEX
    return Status.NOT_ALLOCATED


@dataclass(frozen=True)
class Outcome:
    """
    Result of one engine operation, ready to be rendered as a log line.

    Attributes:
        op (str): "initialize", "allocate", "free", "compact" or "inspect"
        status (Status): OK or the reason the request was refused
        size (Optional[int]): Bytes requested, released, or left free after compaction
        index (Optional[int]): Position of the affected block after the operation
        block (Optional[BlockSnapshot]): Copy of the affected block after the operation
        handle (Optional[int]): block_id of the allocated or released block
        direction (Optional[CompactionDirection]): Compaction target end
        reason (str): Explanation for a refused request
    """
    op: str
    status: Status
    size: Optional[int] = None
    index: Optional[int] = None
    block: Optional[BlockSnapshot] = None
    handle: Optional[int] = None
    direction: Optional[CompactionDirection] = None
    reason: str = ""

    @property
    def ok(self) -> bool:
        return self.status is Status.OK


class AllocationEngine:
    """
    Runs allocate / free / compact requests against a single PartitionTable.

    The engine is the table's only writer. Every request returns an
    :class:`Outcome`; refused requests leave the table unchanged. Outcomes of
    mutating requests are also kept in ``history`` for display.
    """

    def __init__(self, sizes: Optional[Sequence[int]] = None, policy=config.DEFAULT_POLICY, split: bool = True):
        self.policy = PlacementPolicy(policy)
        self.split = split
        self.layout = list(sizes) if sizes is not None else [config.DEFAULT_TOTAL_SIZE]
        self._table = PartitionTable(self.layout, self.policy, split)
        self.history: List[Outcome] = []

    # -----------------------------
    # Setup
    # -----------------------------
    def initialize(self, sizes: Sequence[int]) -> Outcome:
        sizes = list(sizes)
        try:
            table = PartitionTable(sizes, self.policy, self.split)
        except PartitionError as e:
            logger.warning("rejected layout %s: %s", sizes, e)
            return self._record(Outcome("initialize", Status.INVALID_SIZE, reason=str(e)))

        self.layout = sizes
        self._table = table
        self.history = []
        logger.info("initialized %d partitions, %d bytes, %s",
                    len(sizes), table.total_size, self.policy.value)
        return self._record(Outcome("initialize", Status.OK, size=table.total_size))

    def reset(self) -> Outcome:
        return self.initialize(self.layout)

    def set_policy(self, policy):
        """Switch placement policy. The table is rebuilt from its initial layout."""
        policy = PlacementPolicy(policy)
        if policy is self.policy:
            return
        self.policy = policy
        self.reset()

    # -----------------------------
    # Operations
    # -----------------------------
    def allocate(self, size: int) -> Outcome:
        try:
            index = self._table.allocate(size)
        except InvalidSizeError as e:
            logger.warning("rejected allocation: %s", e)
            return self._record(Outcome("allocate", Status.INVALID_SIZE, size=size, reason=str(e)))

        if index is None:
            return self._record(Outcome(
                "allocate", Status.INSUFFICIENT_SPACE, size=size,
                reason=f"no free block of at least {size} bytes ({self._table.free_space} free in total)",
            ))

        block = self._table.block_at(index)
        return self._record(Outcome("allocate", Status.OK, size=size, index=index,
                                    block=block, handle=block.block_id))

    def free(self, index: int, block_id: Optional[int] = None) -> Outcome:
        try:
            released = self._table.block_at(index)
            index = self._table.free(index, block_id)
        except PartitionError as e:
            logger.warning("rejected free of index %r: %s", index, e)
            return self._record(Outcome("free", _status_for(e), index=index,
                                        handle=block_id, reason=str(e)))

        return self._record(Outcome("free", Status.OK, size=released.size, index=index,
                                    block=self._table.block_at(index), handle=released.block_id))

    def free_block(self, block_id: int) -> Outcome:
        try:
            index = self._table.index_of(block_id)
        except PartitionError as e:
            logger.warning("rejected free of block %r: %s", block_id, e)
            return self._record(Outcome("free", _status_for(e), handle=block_id, reason=str(e)))
        return self.free(index, block_id)

    def compact(self, direction=CompactionDirection.LOW) -> Outcome:
        direction = CompactionDirection(direction)
        if not self._table.compact(direction):
            return self._record(Outcome("compact", Status.NOTHING_TO_COMPACT, direction=direction,
                                        reason="free space is already in one place"))

        index = len(self._table) - 1 if direction is CompactionDirection.LOW else 0
        block = self._table.block_at(index)
        if block.occupied:
            index, block = None, None
        return self._record(Outcome("compact", Status.OK, size=self._table.free_space,
                                    index=index, block=block, direction=direction))

    def fill(self, rng: Optional[random.Random] = None, low: int = config.REQUEST_MIN,
             high: int = config.REQUEST_MAX, max_steps: int = config.FILL_MAX_STEPS) -> Iterator[Outcome]:
        """
        Keep allocating random request sizes until every block is occupied.

        Each iteration performs exactly one allocation and yields its outcome,
        so callers can pace the loop or stop it between steps.

        Args:
            rng: Source of request sizes; a fresh ``random.Random`` by default.
            low: Smallest request size (inclusive).
            high: Largest request size (inclusive).
            max_steps: Upper bound on the number of allocation attempts.
        """
        rng = rng or random.Random()
        steps = 0
        while not self._table.is_full and steps < max_steps:
            steps += 1
            yield self.allocate(rng.randint(low, high))

    # -----------------------------
    # Read-only views
    # -----------------------------
    def inspect(self, index: int) -> Outcome:
        try:
            block = self._table.block_at(index)
        except InvalidIndexError as e:
            return Outcome("inspect", Status.INVALID_INDEX, index=index, reason=str(e))
        return Outcome("inspect", Status.OK, index=index, block=block, handle=block.block_id)

    def can_compact(self, direction=CompactionDirection.LOW) -> bool:
        return self._table.can_compact(direction)

    def snapshot(self) -> List[BlockSnapshot]:
        return self._table.snapshot()

    @property
    def total_size(self) -> int:
        return self._table.total_size

    @property
    def is_full(self) -> bool:
        return self._table.is_full

    # --------------------------------------
    # Fragmentation Metrics
    # --------------------------------------
    def fragmentation(self) -> Dict[str, float]:
        occupied = self._table.occupied_space
        idle = self._table.idle_space
        total_free = self._table.free_space

        # Internal: slack inside occupied blocks, relative to occupied space
        internal = idle / occupied if occupied else 0.0
        fragment_percent = idle * 100 // occupied if occupied else 0

        # External: share of free space outside the largest free block
        if total_free == 0:
            external = 0.0
        else:
            external = 1 - (self._table.largest_free / total_free)

        utilization = occupied / self._table.total_size

        return {
            "external": round(external, 4),
            "internal": round(internal, 4),
            "fragment_percent": fragment_percent,
            "utilization": round(utilization, 4),
        }

    def _record(self, outcome: Outcome) -> Outcome:
        self.history.append(outcome)
        logger.debug("%s -> %s", outcome.op, outcome.status.value)
        return outcome
