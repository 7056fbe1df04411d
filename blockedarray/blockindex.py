"""
Index primitives for addressing blocks of a block array

A `Block` wraps block ids so they can be told apart from element indices,
similar to how a `slice` is told apart from an integer. The remaining types
compose blocks with offsets and ranges:
    `BlockIndex` :
        a single element addressed as (block ids, offsets into the block)
    `BlockIndexRange` :
        a rectangular window of elements inside a single block
    `BlockRange` :
        a cartesian range of blocks; this relates to `Block` as `range`
        relates to `int`
"""

from typing import Tuple, Union, Iterator, Sequence
from collections import namedtuple
from itertools import product
import operator
import math

from .errors import DimensionMismatch, IndexOutOfRange
from .typing import MultiStdIndex


def _as_int_tuple(value) -> MultiStdIndex:
    if isinstance(value, (tuple, list)):
        return tuple(operator.index(ii) for ii in value)
    else:
        return (operator.index(value),)


class Block:
    """
    A block id along each dimension

    Parameters
    ----------
    *n : int
        The block id along each dimension. A single tuple of ids is also
        accepted.

    Examples
    --------
    >>> Block(1, 0).n
    (1, 0)
    >>> Block(1)[0:2]
    BlockIndexRange(block=Block(1), indices=(slice(0, 2, None),))
    """
    __slots__ = ('_n',)

    def __init__(self, *n: int):
        if len(n) == 1 and isinstance(n[0], (tuple, list)):
            n = n[0]
        self._n = tuple(operator.index(ii) for ii in n)

    @property
    def n(self) -> MultiStdIndex:
        """Return the block id along each dimension"""
        return self._n

    @property
    def ndim(self) -> int:
        return len(self._n)

    def __repr__(self):
        return f"Block({', '.join(str(ii) for ii in self.n)})"

    def __eq__(self, other):
        if isinstance(other, Block):
            return self.n == other.n
        return NotImplemented

    def __hash__(self):
        return hash((Block, self.n))

    def __lt__(self, other):
        if isinstance(other, Block):
            return self.n < other.n
        return NotImplemented

    def __le__(self, other):
        if isinstance(other, Block):
            return self.n <= other.n
        return NotImplemented

    ## Block arithmetic moves to neighbouring blocks
    def _binary_op(self, op, other):
        if isinstance(other, Block):
            if other.ndim != self.ndim:
                raise DimensionMismatch(
                    f"Can't combine {self} with {other} of a different dimension"
                )
            return Block(*(op(a, b) for a, b in zip(self.n, other.n)))
        elif isinstance(other, int):
            return Block(*(op(a, other) for a in self.n))
        else:
            return NotImplemented

    def __add__(self, other):
        return self._binary_op(operator.add, other)

    def __radd__(self, other):
        return self._binary_op(operator.add, other)

    def __sub__(self, other):
        return self._binary_op(operator.sub, other)

    def __getitem__(self, key):
        """
        Return a `BlockIndex` (integer offsets) or `BlockIndexRange` (any slices)
        inside this block

        With slices present, integer offsets become ranges of length one.
        """
        key = key if isinstance(key, tuple) else (key,)
        if len(key) != self.ndim:
            raise DimensionMismatch(
                f"{self} needs {self.ndim} offsets, not {len(key)}"
            )
        if any(isinstance(idx, (slice, range)) for idx in key):
            # Integer offsets select a single element along their dimension
            key = tuple(
                idx if isinstance(idx, (slice, range))
                else range(operator.index(idx), operator.index(idx)+1)
                for idx in key
            )
            return BlockIndexRange(self, key)
        else:
            return BlockIndex(self, key)


class BlockIndex(namedtuple('BlockIndex', ('block', 'offset'))):
    """
    A global element index stored as block ids plus offsets into the block

    Parameters
    ----------
    block : Union[Block, Tuple[int, ...], int]
        Block ids of the block containing the element
    offset : Union[Tuple[int, ...], int]
        Offsets of the element relative to the start of the block
    """
    __slots__ = ()

    def __new__(cls, block, offset):
        if isinstance(block, Block):
            block = block.n
        block = _as_int_tuple(block)
        offset = _as_int_tuple(offset)
        if len(block) != len(offset):
            raise DimensionMismatch(
                f"block ids {block} and offsets {offset} have different dimensions"
            )
        return super().__new__(cls, block, offset)

    @property
    def ndim(self) -> int:
        return len(self.block)


class BlockIndexRange(namedtuple('BlockIndexRange', ('block', 'indices'))):
    """
    A rectangular range of elements inside a single block

    Parameters
    ----------
    block : Union[Block, Tuple[int, ...], int]
        The block
    indices : Tuple[Union[slice, range], ...]
        Ranges of offsets relative to the start of the block, one per dimension.
        Ranges must have a unit step.
    """
    __slots__ = ()

    def __new__(cls, block, indices):
        if not isinstance(block, Block):
            block = Block(*_as_int_tuple(block))
        if isinstance(indices, (slice, range)):
            indices = (indices,)
        indices = tuple(indices)
        if len(indices) != block.ndim:
            raise DimensionMismatch(
                f"{block} needs {block.ndim} index ranges, not {len(indices)}"
            )
        return super().__new__(cls, block, indices)

    @property
    def ndim(self) -> int:
        return self.block.ndim

    def resolve(self, lengths: Sequence[int]) -> Tuple[range, ...]:
        """
        Return the offset ranges with start/stop resolved against block lengths
        """
        return tuple(
            _resolve_range(idx, length) for idx, length in zip(self.indices, lengths)
        )


def _resolve_range(idx: Union[slice, range], length: int) -> range:
    if isinstance(idx, slice):
        idx = range(*idx.indices(length))
    if idx.step != 1:
        raise IndexError(f"only unit step ranges are supported, not {idx}")
    if idx.start < 0 or idx.stop > length or idx.start > idx.stop:
        raise IndexOutOfRange(idx, length)
    return idx


class BlockRange:
    """
    A cartesian range of blocks

    Parameters
    ----------
    *ranges : Union[range, int]
        A range of block ids along each dimension. An integer `n` is shorthand
        for `range(n)`.
    """

    def __init__(self, *ranges: Union[range, int]):
        _ranges = []
        for rng in ranges:
            if not isinstance(rng, range):
                rng = range(operator.index(rng))
            if rng.step != 1:
                raise ValueError(f"`BlockRange` needs unit step ranges, not {rng}")
            _ranges.append(rng)
        self._ranges = tuple(_ranges)

    @classmethod
    def between(cls, start: Block, stop: Block) -> 'BlockRange':
        """
        Return the range of blocks from `start` to `stop` (inclusive)
        """
        if start.ndim != stop.ndim:
            raise DimensionMismatch(f"{start} and {stop} have different dimensions")
        return cls(*(range(a, b+1) for a, b in zip(start.n, stop.n)))

    @property
    def ranges(self) -> Tuple[range, ...]:
        return self._ranges

    @property
    def ndim(self) -> int:
        return len(self._ranges)

    @property
    def shape(self) -> Tuple[int, ...]:
        return tuple(len(rng) for rng in self._ranges)

    def __len__(self):
        return math.prod(self.shape)

    def __iter__(self) -> Iterator[Block]:
        for n in product(*self._ranges):
            yield Block(*n)

    def __contains__(self, block):
        if not isinstance(block, Block) or block.ndim != self.ndim:
            return False
        return all(ii in rng for ii, rng in zip(block.n, self._ranges))

    def __eq__(self, other):
        if isinstance(other, BlockRange):
            return self.ranges == other.ranges
        return NotImplemented

    def __hash__(self):
        return hash((BlockRange, self.ranges))

    def __repr__(self):
        return f"BlockRange({', '.join(repr(rng) for rng in self.ranges)})"


## Conversion between global coordinates and block indices
def blockindex_to_global(axes, blockindex: BlockIndex) -> MultiStdIndex:
    """
    Return global element coordinates from a block index

    Parameters
    ----------
    axes : Tuple[AbstractAxisPartition, ...]
        The partition of each dimension
    blockindex : BlockIndex
        The block index to convert

    Returns
    -------
    Tuple[int, ...]
        The global coordinates
    """
    if len(axes) != blockindex.ndim:
        raise DimensionMismatch(
            f"{blockindex} has {blockindex.ndim} dimensions but {len(axes)} axes were given"
        )
    coords = []
    for axis, block, offset in zip(axes, blockindex.block, blockindex.offset):
        length = axis.blocklength(block)
        if not 0 <= offset < length:
            raise IndexOutOfRange(offset, length)
        coords.append(axis.blockstart(block) + offset)
    return tuple(coords)


def global_to_blockindex(axes, coords: Sequence[int]) -> BlockIndex:
    """
    Return the block index of global element coordinates

    Each coordinate is located by binary search over its axis' block stops.
    """
    if len(axes) != len(coords):
        raise DimensionMismatch(
            f"{len(coords)} coordinates given for {len(axes)} axes"
        )
    blocks_offsets = [axis.findblock(coord) for axis, coord in zip(axes, coords)]
    blocks = tuple(block for block, _ in blocks_offsets)
    offsets = tuple(offset for _, offset in blocks_offsets)
    return BlockIndex(blocks, offsets)


def blockaxes(axes, dim=None):
    """
    Return the range of valid blocks along each axis

    Parameters
    ----------
    axes : Tuple[AbstractAxisPartition, ...]
    dim : Optional[int]
        If supplied, only return the range of blocks along this dimension
    """
    ranges = tuple(BlockRange(axis.blockcount()) for axis in axes)
    if dim is None:
        return ranges
    else:
        return ranges[dim]
