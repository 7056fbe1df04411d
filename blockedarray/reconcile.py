"""
Align two partitions of the same axis

When two block arrays are partitioned differently along an axis, operations
between them are carried out on the common refinement of both partitions.
`PartitionReconciler` expresses each block of a refinement as a range inside a
block of the coarser, 'target' partition, so that views into the target can be
taken block by block.
"""

from typing import Iterator, List, Tuple, Union, Sequence
import logging

from .axis import AbstractAxisPartition, BlockedRange, refine
from .blockindex import Block, BlockIndexRange
from .config import config
from .errors import IncompatiblePartitions
from .typing import AxisStops

_logger = logging.getLogger(__name__)

Partition = Union[AbstractAxisPartition, Sequence[int]]


def _as_stops(partition: Partition) -> AxisStops:
    if isinstance(partition, AbstractAxisPartition):
        return partition.blockstops()
    else:
        return BlockedRange(partition).blockstops()


class PartitionReconciler:
    """
    An iterator over the blocks of a refined partition, in a target partition

    Each block of `refined` lies inside exactly one block of `target`. Iterating
    yields a `BlockIndexRange` per block of `refined` which names that target
    block and the range of the refined block relative to the target block's
    start. The ranges cover the axis in order with no gaps or overlaps.

    Parameters
    ----------
    target : Union[AbstractAxisPartition, Sequence[int]]
        The coarser partition (or its block stops)
    refined : Union[AbstractAxisPartition, Sequence[int]]
        The finer partition (or its block stops). Every stop of `target` must
        also be a stop of `refined`.
    check : Optional[bool]
        Whether to verify that `refined` refines `target`. Defaults to the
        `reconcile.check_boundaries` config value.

    Raises
    ------
    IncompatiblePartitions
        If the check is enabled and `refined` is not a refinement of `target`

    Examples
    --------
    >>> [(idx.block.n[0], idx.indices[0])
    ...  for idx in PartitionReconciler([1, 3, 6], [1, 3, 4, 6])]
    [(0, range(0, 1)), (1, range(0, 2)), (2, range(0, 1)), (2, range(1, 3))]
    """

    def __init__(self, target: Partition, refined: Partition, check=None):
        self._target = _as_stops(target)
        self._refined = _as_stops(refined)

        if check is None:
            check = config.get("reconcile.check_boundaries")
        if check:
            validate_refinement(self._target, self._refined)

    @property
    def target_stops(self) -> AxisStops:
        return self._target

    @property
    def refined_stops(self) -> AxisStops:
        return self._refined

    def __len__(self):
        return len(self._refined)

    def __iter__(self) -> Iterator[BlockIndexRange]:
        target = self._target
        nblock = len(target)
        block = 0
        start = 0
        for stop in self._refined:
            # Advance to the first target block that ends at or after `stop`
            while block < nblock and target[block] < stop:
                block += 1
            if block == nblock:
                raise IncompatiblePartitions(
                    f"Block stop {stop} lies past the target partition {target}"
                )
            offset = 0 if block == 0 else target[block-1]
            yield BlockIndexRange(Block(block), (range(start-offset, stop-offset),))
            start = stop

    def __repr__(self):
        return f"{self.__class__.__name__}({list(self._target)}, {list(self._refined)})"


def validate_refinement(target: AxisStops, refined: AxisStops):
    """
    Raise `IncompatiblePartitions` if `refined` is not a refinement of `target`
    """
    total_target = target[-1] if len(target) > 0 else 0
    total_refined = refined[-1] if len(refined) > 0 else 0
    if total_target != total_refined:
        raise IncompatiblePartitions(
            f"Partitions {list(target)} and {list(refined)} cover different lengths"
        )
    missing = set(target) - set(refined)
    if len(missing) > 0:
        raise IncompatiblePartitions(
            f"Block stops {sorted(missing)} of {list(target)} are missing from"
            f" {list(refined)}"
        )
    if len(refined) > 0 and len(target) == 0:
        raise IncompatiblePartitions(
            f"Can't place blocks of {list(refined)} in a partition with no blocks"
        )


def join_pieces(pieces: Sequence[BlockIndexRange]) -> BlockIndexRange:
    """
    Return an n-d `BlockIndexRange` from 1-d pieces along each dimension
    """
    block = Block(*(piece.block.n[0] for piece in pieces))
    return BlockIndexRange(block, tuple(piece.indices[0] for piece in pieces))


def reconcile_axes(
        a: AbstractAxisPartition, b: AbstractAxisPartition
    ) -> Tuple[BlockedRange, List[BlockIndexRange], List[BlockIndexRange]]:
    """
    Return the common refinement of two axes and their pieces in it

    Returns
    -------
    refined : BlockedRange
        The common refinement of `a` and `b`
    pieces_a, pieces_b : List[BlockIndexRange]
        The location of each refined block in `a` and `b` respectively
    """
    refined = refine(a, b)
    # A refinement built from `a` and `b` satisfies the precondition
    pieces_a = list(PartitionReconciler(a, refined, check=False))
    pieces_b = list(PartitionReconciler(b, refined, check=False))
    _logger.debug(
        "Reconciled axes %r and %r into %d blocks", a, b, refined.blockcount()
    )
    return refined, pieces_a, pieces_b
