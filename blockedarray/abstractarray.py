"""
This module contains the behaviour shared by all block arrays

A block array behaves like an n-dimensional array of elements while also
exposing its blocks. The block structure is dictated by its axes; one
`AbstractAxisPartition` for each dimension. Concrete block arrays decide how
elements are stored and implement the block-level accessors.
"""

from typing import TypeVar, Generic, Tuple, List, Optional, Union
import math
import numbers

import numpy as np

from .axis import AbstractAxisPartition
from .blockindex import (
    Block, BlockIndex, BlockIndexRange, BlockRange,
    blockaxes, blockindex_to_global, global_to_blockindex
)
from .checks import checkblockbounds, checkblockrange
from .errors import DimensionMismatch, IndexOutOfRange
from .typing import Shape, BlockShape, MultiElementIndex, MultiStdIndex

T = TypeVar('T')

# One per dimension of an element index:
# (grid index, offsets into the block(s), number of selected elements per block)
# For an integer index the grid index and offset are ints; for a range index
# they are lists with one entry per selected block.
AxisSelection = Tuple[Union[int, List[int]], Union[int, List[range]], Optional[List[int]]]


class AbstractBlockArray(Generic[T]):
    """
    An n-dimensional array partitioned into blocks along every dimension

    Indexing follows these rules:
        - `A[Block(i, j)]` (or `A[Block(i), Block(j)]`) returns a block
        - `A[i, j]` and `A[BlockIndex((i, j), (k, l))]` return a single element
        - `A[a:b, c:d]`, `A[BlockRange(...)]` and `A[BlockIndexRange(...)]`
        return a view that aliases the array's storage

    Attributes
    ----------
    axes : Tuple[AbstractAxisPartition, ...]
        The partition of each dimension
    shape : Tuple[int, ...]
        The number of elements along each dimension
    blocksize : Tuple[int, ...]
        The number of blocks along each dimension
    """
    _axes: Tuple[AbstractAxisPartition, ...]

    # Makes numpy defer to the reflected operators, e.g. `np.float64(2)*A`
    __array_ufunc__ = None

    @property
    def axes(self) -> Tuple[AbstractAxisPartition, ...]:
        return self._axes

    @property
    def shape(self) -> Shape:
        return tuple(len(axis) for axis in self.axes)

    @property
    def ndim(self) -> int:
        return len(self.axes)

    @property
    def size(self) -> int:
        return math.prod(self.shape)

    @property
    def dtype(self) -> np.dtype:
        raise NotImplementedError()

    @property
    def blocksize(self) -> Shape:
        """Return the number of blocks along each dimension"""
        return tuple(axis.blockcount() for axis in self.axes)

    @property
    def bshape(self) -> BlockShape:
        """Return the block lengths along each dimension"""
        return tuple(axis.blocklengths() for axis in self.axes)

    def blockaxes(self, dim: Optional[int]=None):
        """Return the `BlockRange` of valid blocks along each dimension"""
        return blockaxes(self.axes, dim)

    def blockshape(self, *inds: int) -> Shape:
        """Return the shape of the block at the given block indices"""
        return tuple(axis.blocklength(ind) for axis, ind in zip(self.axes, inds))

    ## String representation functions
    def summary(self) -> str:
        """
        Return a short description of the array

        For example, '2×3-blocked 4×5 BlockArray'
        """
        name = self.__class__.__name__
        if self.ndim == 1:
            return f"{self.blocksize[0]}-blocked {self.shape[0]}-element {name}"
        blocksize = '×'.join(str(n) for n in self.blocksize)
        shape = '×'.join(str(n) for n in self.shape)
        return f"{blocksize}-blocked {shape} {name}"

    def __repr__(self):
        return f"{self.__class__.__name__}(bshape={self.bshape})"

    def __str__(self):
        return f"{self.summary()}(dtype={self.dtype})"

    ## Bounds checking
    def blockcheckbounds(self, *inds: int):
        """
        Raise `BlockBoundsError` if the block indices are out of bounds

        Subclasses can override this to customize block bounds checks.
        """
        checkblockbounds(self.axes, inds, self.summary())

    ## Block level access
    def getblock(self, *inds: int):
        raise NotImplementedError()

    def setblock(self, value, *inds: int):
        raise NotImplementedError()

    def getblock_into(self, dest: np.ndarray, *inds: int) -> np.ndarray:
        """
        Copy the block at the given block indices into `dest` and return it

        Raises
        ------
        BlockBoundsError
            If the block indices are out of bounds
        DimensionMismatch
            If `dest` doesn't have the block's shape
        """
        self.blockcheckbounds(*inds)
        expected_shape = self.blockshape(*inds)
        if tuple(dest.shape) != expected_shape:
            raise DimensionMismatch(
                f"Destination with shape {tuple(dest.shape)} can't store block"
                f" {list(inds)} with shape {expected_shape}"
            )
        dest[...] = self.view(Block(*inds))
        return dest

    ## Element level access
    def getelement(self, *coords: int):
        """Return the element at global coordinates"""
        return self._getelement(global_to_blockindex(self.axes, coords))

    def setelement(self, value, *coords: int):
        """Set the element at global coordinates"""
        self._setelement(global_to_blockindex(self.axes, coords), value)

    def _getelement(self, blockindex: BlockIndex):
        raise NotImplementedError()

    def _setelement(self, blockindex: BlockIndex, value):
        raise NotImplementedError()

    ## Views
    def view(self, key):
        """
        Return a view of part of the array that aliases its storage

        Parameters
        ----------
        key : Union[Block, BlockIndexRange, BlockRange, MultiElementIndex]
            What to view. A `Block` views one block, a `BlockIndexRange` views a
            window inside a block and a `BlockRange` views a range of blocks.
            Integers and unit-step slices view a range of elements.
        """
        key = _as_key(key)
        if _is_block_key(key):
            inds = _block_key_to_inds(key)
            self.blockcheckbounds(*inds)
            return self._view_block(inds)
        elif len(key) == 1 and isinstance(key[0], BlockIndexRange):
            bidx = key[0]
            self.blockcheckbounds(*bidx.block.n)
            offsets = bidx.resolve(self.blockshape(*bidx.block.n))
            return self._view_blockindexrange(bidx.block.n, offsets)
        elif len(key) == 1 and isinstance(key[0], BlockRange):
            brange = key[0]
            self._checkblockrange(brange)
            return self._view_blockrange(brange)
        else:
            return self._view_elements(self._select_elements(key))

    def _view_block(self, inds: MultiStdIndex):
        raise NotImplementedError()

    def _view_blockindexrange(self, inds: MultiStdIndex, offsets: Tuple[range, ...]):
        raise NotImplementedError()

    def _view_blockrange(self, brange: BlockRange):
        raise NotImplementedError()

    def _view_elements(self, selection: List[AxisSelection]):
        raise NotImplementedError()

    def _checkblockrange(self, brange: BlockRange):
        if len(brange) > 0:
            # The corner blocks bound every block in a cartesian range
            self.blockcheckbounds(*(rng.start for rng in brange.ranges))
            self.blockcheckbounds(*(rng.stop-1 for rng in brange.ranges))
        else:
            checkblockrange(self.axes, brange.ranges, self.summary())

    def _select_elements(self, key: MultiElementIndex) -> List[AxisSelection]:
        """
        Return the blocks and block offsets selected by an element index
        """
        key = expand_ellipsis(key, self.ndim)
        selection = []
        for idx, axis in zip(key, self.axes):
            if _is_integer(idx):
                block, offset = axis.findblock(idx)
                selection.append((block, offset, None))
            elif isinstance(idx, (slice, range)):
                rng = _normalize_range(idx, len(axis))
                pieces = axis.blockslices(rng.start, rng.stop)
                blocks = [block for block, _ in pieces]
                offsets = [offset for _, offset in pieces]
                selection.append((blocks, offsets, [len(offset) for offset in offsets]))
            else:
                raise TypeError(f"Unsupported index {idx!r} of type {type(idx)}")
        return selection

    ## Indexing interface
    def __getitem__(self, key):
        key = _as_key(key)
        if _is_block_key(key):
            return self.getblock(*_block_key_to_inds(key))
        elif len(key) == 1 and isinstance(key[0], BlockIndex):
            return self._getelement(_check_blockindex(self.axes, key[0]))
        elif all(_is_integer(idx) for idx in key) and len(key) == self.ndim:
            return self.getelement(*key)
        else:
            return self.view(key)

    def __setitem__(self, key, value):
        key = _as_key(key)
        if _is_block_key(key):
            self.setblock(value, *_block_key_to_inds(key))
        elif len(key) == 1 and isinstance(key[0], BlockIndex):
            self._setelement(_check_blockindex(self.axes, key[0]), value)
        elif all(_is_integer(idx) for idx in key) and len(key) == self.ndim:
            self.setelement(value, *key)
        else:
            assign(self.view(key), value)

    def _assign(self, value):
        """Set every element from `value`, broadcasting like numpy"""
        raise NotImplementedError()

    def fill(self, value):
        """Set every element to `value`"""
        self[...] = value
        return self

    ## Iterable interface over the first axis
    def __len__(self):
        return self.shape[0]

    def __iter__(self):
        for ii in range(self.shape[0]):
            yield self[ii]

    ## Methods for converting to a flat array
    def to_ndarray(self) -> np.ndarray:
        raise NotImplementedError()

    def __array__(self, dtype=None, copy=None):
        array = self.to_ndarray()
        if copy:
            return np.array(array, dtype=dtype, copy=True)
        if copy is False and dtype is not None and np.dtype(dtype) != array.dtype:
            raise ValueError(
                f"Can't convert {self.summary()} to dtype {np.dtype(dtype)} without copying"
            )
        return np.asarray(array, dtype=dtype)

    def copy(self):
        raise NotImplementedError()

    def __copy__(self):
        return self.copy()

    def map_blocks(self, func):
        """Return a block array with `func` applied to every block"""
        raise NotImplementedError()

    def repartition(self, *lengths):
        raise NotImplementedError()

    ## common operator overloading
    # Import `blockops` here to avoid circular import errors
    def __add__(self, other):
        from . import blockops
        return blockops.add(self, other)

    def __sub__(self, other):
        from . import blockops
        return blockops.sub(self, other)

    def __mul__(self, other):
        from . import blockops
        return blockops.mul(self, other)

    def __truediv__(self, other):
        from . import blockops
        return blockops.truediv(self, other)

    def __radd__(self, other):
        from . import blockops
        return blockops.add(other, self)

    def __rsub__(self, other):
        from . import blockops
        return blockops.sub(other, self)

    def __rmul__(self, other):
        from . import blockops
        return blockops.mul(other, self)

    def __rtruediv__(self, other):
        from . import blockops
        return blockops.truediv(other, self)

    def __neg__(self):
        from . import blockops
        return blockops.neg(self)

    def __pos__(self):
        from . import blockops
        return blockops.pos(self)


def assign(dest, value):
    """
    Copy `value` into a view returned by `AbstractBlockArray.view`
    """
    if isinstance(dest, AbstractBlockArray):
        dest._assign(value)
    else:
        try:
            dest[...] = value
        except ValueError as err:
            raise DimensionMismatch(str(err)) from err


def _is_integer(idx) -> bool:
    return isinstance(idx, numbers.Integral) and not isinstance(idx, bool)


def _as_key(key) -> tuple:
    # `BlockIndex` and `BlockIndexRange` are tuples but index a single item
    if isinstance(key, (BlockIndex, BlockIndexRange)) or not isinstance(key, tuple):
        return (key,)
    return key


def _is_block_key(key: tuple) -> bool:
    return len(key) > 0 and all(isinstance(idx, Block) for idx in key)


def _block_key_to_inds(key: Tuple[Block, ...]) -> MultiStdIndex:
    if len(key) == 1:
        return key[0].n
    if any(block.ndim != 1 for block in key):
        raise IndexError(f"Can't combine multi-dimensional blocks {key}")
    return tuple(block.n[0] for block in key)


def _check_blockindex(axes, blockindex: BlockIndex) -> BlockIndex:
    # Validates block ids and offsets and normalizes negative values
    return global_to_blockindex(axes, blockindex_to_global(axes, blockindex))


def _normalize_range(idx: Union[slice, range], size: int) -> range:
    if isinstance(idx, slice):
        rng = range(*idx.indices(size))
    else:
        rng = idx
        if not (0 <= rng.start <= size and 0 <= rng.stop <= size):
            raise IndexOutOfRange(rng, size)
    if rng.step != 1:
        raise IndexError(f"only unit step slices are supported, not {idx}")
    if rng.stop < rng.start:
        rng = range(rng.start, rng.start)
    return rng


def expand_ellipsis(key: MultiElementIndex, ndim: int) -> MultiElementIndex:
    """
    Expands missing axis indices and/or ellipses in a multi-index

    This ensures the number of axis indices matches the number of axes.

    Parameters
    ----------
    key : tuple
        A tuple of indices used to index individual axes
    ndim : int
        The number of dimensions of the array being indexed
    """
    num_ellipsis = sum(1 for idx in key if idx is Ellipsis)
    if num_ellipsis > 1:
        raise IndexError("an index can only have a single ellipsis ('...')")
    if len(key) - num_ellipsis > ndim:
        raise DimensionMismatch(
            f"too many indices for array; expected {ndim}, got {len(key)-num_ellipsis}"
        )

    if num_ellipsis == 1:
        num_ax_expand = ndim - len(key) + 1
        axis_expand = [ii for ii, idx in enumerate(key) if idx is Ellipsis][0]
    else:
        num_ax_expand = ndim - len(key)
        axis_expand = len(key)

    return (
        key[:axis_expand]
        + (slice(None),)*num_ax_expand
        + key[axis_expand+num_ellipsis:]
    )
