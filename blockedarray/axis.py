"""
Partitions of a single array axis into contiguous blocks

An axis partition divides the index range `[0, n)` of one dimension into
consecutive blocks. All partitions store the exclusive stop index of each
block (`blockstops`); starts and lengths are derived from these. For example,
block lengths `(2, 3, 1)` correspond to the stops `(2, 5, 6)` and the starts
`(0, 2, 5)`.

Any partition scheme can be used with block arrays by subclassing
`AbstractAxisPartition` and implementing `blockstops`.
"""

from typing import Tuple, List, Iterator, Union, Sequence
from itertools import accumulate
import abc
import bisect
import operator

from .errors import (
    InvalidPartition, BlockIndexOutOfRange, IndexOutOfRange, IncompatiblePartitions
)
from .blockindex import Block
from .typing import AxisLengths, AxisStops


class AbstractAxisPartition(abc.ABC):
    """
    The interface of a partitioned axis

    Subclasses only have to implement `blockstops`.
    """

    @abc.abstractmethod
    def blockstops(self) -> AxisStops:
        """Return the exclusive stop index of each block"""

    def blockcount(self) -> int:
        """Return the number of blocks"""
        return len(self.blockstops())

    def blockstarts(self) -> AxisStops:
        """Return the start index of each block"""
        stops = self.blockstops()
        if len(stops) == 0:
            return ()
        return (0,) + stops[:-1]

    def blocklengths(self) -> Tuple[int, ...]:
        """Return the length of each block"""
        return tuple(
            stop-start for start, stop in zip(self.blockstarts(), self.blockstops())
        )

    def _normalize_block(self, block: int) -> int:
        n = self.blockcount()
        _block = operator.index(block)
        if _block < 0:
            _block += n
        if not 0 <= _block < n:
            raise BlockIndexOutOfRange(block, n)
        return _block

    def blockstart(self, block: int) -> int:
        """Return the start index of a block"""
        block = self._normalize_block(block)
        if block == 0:
            return 0
        return self.blockstops()[block-1]

    def blockstop(self, block: int) -> int:
        """Return the exclusive stop index of a block"""
        return self.blockstops()[self._normalize_block(block)]

    def blocklength(self, block: int) -> int:
        """Return the length of a block"""
        block = self._normalize_block(block)
        return self.blockstop(block) - self.blockstart(block)

    def blockrange(self, block: int) -> range:
        """Return the range of element indices in a block"""
        block = self._normalize_block(block)
        return range(self.blockstart(block), self.blockstop(block))

    def findblock(self, index: int) -> Tuple[int, int]:
        """
        Return the block containing an element index and the offset into it

        Parameters
        ----------
        index : int
            The element index. Negative indices count from the end of the axis.

        Returns
        -------
        block, offset : int
        """
        size = len(self)
        _index = operator.index(index)
        if _index < 0:
            _index += size
        if not 0 <= _index < size:
            raise IndexOutOfRange(index, size)

        # The first block with a stop past `_index`; this skips empty blocks
        block = bisect.bisect_right(self.blockstops(), _index)
        return block, _index - self.blockstart(block)

    def blockslices(self, start: int, stop: int) -> List[Tuple[int, range]]:
        """
        Return the blocks and local offset ranges covering an element range

        Parameters
        ----------
        start, stop : int
            The element range `[start, stop)`; this must lie in `[0, len(self)]`

        Returns
        -------
        List[Tuple[int, range]]
            A `(block, offsets)` pair for each block overlapping the range.
            `offsets` is relative to the start of the block.
        """
        size = len(self)
        if not 0 <= start <= stop <= size:
            raise IndexOutOfRange(range(start, stop), size)

        # Selecting the whole axis keeps every block, including empty ones
        if start == 0 and stop == size:
            return [
                (block, range(0, length))
                for block, length in enumerate(self.blocklengths())
            ]
        if start == stop:
            return []

        starts = self.blockstarts()
        stops = self.blockstops()
        block, _ = self.findblock(start)
        ret = []
        while block < len(stops) and starts[block] < stop:
            offset = starts[block]
            lo = max(start, offset) - offset
            hi = min(stop, stops[block]) - offset
            ret.append((block, range(lo, hi)))
            block += 1
        return ret

    def subaxis(self, blocks: range) -> 'BlockedRange':
        """Return the partition formed by a contiguous range of blocks"""
        lengths = self.blocklengths()
        return BlockedRange.from_lengths([lengths[ii] for ii in blocks])

    def isequal(self, other: 'AbstractAxisPartition') -> bool:
        """Return whether `other` has the same block structure"""
        return self.blockstops() == other.blockstops()

    def __len__(self):
        stops = self.blockstops()
        return stops[-1] if len(stops) > 0 else 0

    def __iter__(self) -> Iterator[int]:
        return iter(range(len(self)))

    def __getitem__(self, key: Block) -> range:
        if isinstance(key, Block):
            if key.ndim != 1:
                raise IndexError(f"Can't index an axis with {key}")
            return self.blockrange(key.n[0])
        else:
            raise TypeError(f"Axes can only be indexed by `Block`, not {type(key)}")

    def __eq__(self, other):
        if isinstance(other, AbstractAxisPartition):
            return self.isequal(other)
        return NotImplemented

    def __hash__(self):
        return hash(self.blockstops())

    def __repr__(self):
        return f"{self.__class__.__name__}({list(self.blockstops())})"

    def __str__(self):
        return f"{self.blockcount()}-blocked {len(self)}-element {self.__class__.__name__}"


class BlockedRange(AbstractAxisPartition):
    """
    An axis divided into blocks of arbitrary lengths

    Parameters
    ----------
    stops : Sequence[int]
        The exclusive stop index of each block. These must be non-negative and
        non-decreasing; equal consecutive stops give empty blocks.
    """

    def __init__(self, stops: Sequence[int]):
        try:
            _stops = tuple(operator.index(stop) for stop in stops)
        except TypeError as err:
            raise InvalidPartition(stops, "stops must be integers") from err

        if len(_stops) > 0 and _stops[0] < 0:
            raise InvalidPartition(stops, "stops must be non-negative")
        if any(b < a for a, b in zip(_stops[:-1], _stops[1:])):
            raise InvalidPartition(stops, "stops must be non-decreasing")
        self._stops = _stops

    @classmethod
    def from_lengths(cls, lengths: AxisLengths) -> 'BlockedRange':
        """
        Return a blocked range from the length of each block

        Raises
        ------
        InvalidPartition
            If any length is negative or not an integer
        """
        try:
            _lengths = [operator.index(length) for length in lengths]
        except TypeError as err:
            raise InvalidPartition(lengths, "lengths must be integers") from err
        if any(length < 0 for length in _lengths):
            raise InvalidPartition(lengths, "lengths must be non-negative")
        return cls(tuple(accumulate(_lengths)))

    def blockstops(self) -> AxisStops:
        return self._stops


class UnblockedRange(AbstractAxisPartition):
    """
    An axis of length `n` treated as a single block

    This is the block structure of every axis of a plain array.
    """

    def __init__(self, n: int):
        n = operator.index(n)
        if n < 0:
            raise InvalidPartition((n,), "lengths must be non-negative")
        self._n = n

    def blockstops(self) -> AxisStops:
        return (self._n,)

    def __repr__(self):
        return f"{self.__class__.__name__}({self._n})"


def blockedrange(lengths: AxisLengths) -> BlockedRange:
    """Return a `BlockedRange` from block lengths"""
    return BlockedRange.from_lengths(lengths)


def as_axis(
        axis: Union[AbstractAxisPartition, AxisLengths, int]
    ) -> AbstractAxisPartition:
    """
    Return an axis partition from a partition, a sequence of lengths or an int

    An integer `n` is interpreted as a single block of length `n`.
    """
    if isinstance(axis, AbstractAxisPartition):
        return axis
    elif isinstance(axis, (list, tuple, range)) or hasattr(axis, '__array__'):
        return BlockedRange.from_lengths(axis)
    else:
        try:
            return UnblockedRange(axis)
        except TypeError as err:
            raise InvalidPartition(axis, "expected a partition or block lengths") from err


def blockisequal(a, b) -> bool:
    """
    Return whether two axes (or two tuples of axes) have the same block structure
    """
    if isinstance(a, tuple) and isinstance(b, tuple):
        return len(a) == len(b) and all(blockisequal(ai, bi) for ai, bi in zip(a, b))
    elif isinstance(a, AbstractAxisPartition) and isinstance(b, AbstractAxisPartition):
        return a.isequal(b)
    else:
        return False


def refine(
        a: AbstractAxisPartition, b: AbstractAxisPartition
    ) -> BlockedRange:
    """
    Return the common refinement of two partitions of the same axis

    The refinement has a block boundary wherever either `a` or `b` does.

    Raises
    ------
    IncompatiblePartitions
        If the partitions cover axes of different lengths
    """
    if len(a) != len(b):
        raise IncompatiblePartitions(
            f"Can't refine partitions of different lengths {len(a)} and {len(b)}"
        )
    if a.isequal(b):
        return BlockedRange(a.blockstops())
    stops = sorted(set(a.blockstops()) | set(b.blockstops()))
    return BlockedRange(stops)
