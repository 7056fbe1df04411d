"""
This module contains the block array definition and defines its creation routines

A `BlockArray` stores every block as an independent sub-array. Blocks are held
in a numpy object array (the 'block grid') so blocks can be extracted and
replaced without copying, while the whole array must be assembled to get a
contiguous representation.
"""

from typing import TypeVar, Tuple, Union, Sequence, Optional
from itertools import product, accumulate, chain
import functools
import logging

import numpy as np

from .abstractarray import AbstractBlockArray, AxisSelection
from .axis import AbstractAxisPartition, BlockedRange, as_axis, refine
from .blockindex import BlockIndex, BlockRange
from .errors import (
    DimensionMismatch, InconsistentBlockShapes, UninitializedBlockAccess
)
from .reconcile import PartitionReconciler, join_pieces
from .typing import Shape, MultiStdIndex, NestedArray, AxisLengths

T = TypeVar('T')

_logger = logging.getLogger(__name__)


class _Uninitialized:
    """
    The state of a block slot that has never been assigned a block
    """
    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = object.__new__(cls)
        return cls._instance

    def __repr__(self):
        return '#undef'

    def __reduce__(self):
        return (_Uninitialized, ())

UNINITIALIZED = _Uninitialized()


## `BlockArray` object + core functions
class BlockArray(AbstractBlockArray[T]):
    """
    An n-dimensional block array storing each block separately

    Use `mortar`, `from_array`, `undef_blocks`, `zeros`, etc. to create block
    arrays; the constructor takes the block grid directly.

    Parameters
    ----------
    blocks : np.ndarray
        A numpy object array of blocks. The block at grid position `(i, j, ...)`
        must have shape `(axes[0].blocklength(i), axes[1].blocklength(j), ...)`.
        A slot can hold `UNINITIALIZED` to mark a block that is not yet assigned.
    axes : Tuple[Union[AbstractAxisPartition, Sequence[int]], ...]
        The partition of each dimension, or the block lengths along it
    dtype :
        The element type. If not given this is inferred from the blocks.

    Attributes
    ----------
    blocks : np.ndarray
        The block grid
    """

    def __init__(
            self,
            blocks: np.ndarray,
            axes: Sequence[Union[AbstractAxisPartition, AxisLengths]],
            dtype=None
        ):
        if not (isinstance(blocks, np.ndarray) and blocks.dtype == object):
            raise TypeError(
                "Expected `blocks` to be a numpy object array,"
                f" not {type(blocks)}; use `mortar` to build from nested lists"
            )
        self._axes = tuple(as_axis(axis) for axis in axes)
        if blocks.shape != self.blocksize:
            raise DimensionMismatch(
                f"Block grid with shape {blocks.shape} doesn't match"
                f" {self.blocksize} blocks given by the axes"
            )
        self._dtype = None if dtype is None else np.dtype(dtype)
        _validate_block_shapes(blocks, self._axes, self._dtype)

        self._blocks = blocks

    @property
    def blocks(self) -> np.ndarray:
        """Return the numpy object array containing blocks"""
        return self._blocks

    @property
    def dtype(self) -> np.dtype:
        if self._dtype is not None:
            return self._dtype
        present = [block.dtype for block in self._blocks.flat if block is not UNINITIALIZED]
        if len(present) == 0:
            return np.dtype(float)
        return functools.reduce(np.promote_types, present)

    def isinitialized(self, *inds: int) -> bool:
        """Return whether the block at the given block indices has been assigned"""
        self.blockcheckbounds(*inds)
        return self._blocks[inds] is not UNINITIALIZED

    def _present_block(self, inds: MultiStdIndex):
        block = self._blocks[tuple(inds)]
        if block is UNINITIALIZED:
            raise UninitializedBlockAccess(inds)
        return block

    def _check_initialized(self):
        for inds in np.ndindex(*self._blocks.shape):
            self._present_block(inds)

    ## Block level access
    def getblock(self, *inds: int):
        """
        Return the block at the given block indices

        The stored block is returned (no copy), so modifying it modifies the
        block array.

        Raises
        ------
        BlockBoundsError
            If the block indices are out of bounds
        UninitializedBlockAccess
            If the block has not been assigned
        """
        self.blockcheckbounds(*inds)
        return self._present_block(inds)

    def setblock(self, value, *inds: int):
        """
        Store `value` as the block at the given block indices

        Numpy arrays are stored as is (no copy); the block array and the caller
        share `value` afterwards.

        Raises
        ------
        BlockBoundsError
            If the block indices are out of bounds
        InconsistentBlockShapes
            If `value` doesn't have the block's shape
        TypeError
            If the array has a fixed dtype that `value` can't be cast to without
            changing its kind (e.g. complex values in a float array)
        """
        self.blockcheckbounds(*inds)
        if not isinstance(value, np.ndarray):
            value = np.asarray(value)
        expected_shape = self.blockshape(*inds)
        if value.shape != expected_shape:
            raise InconsistentBlockShapes(
                f"Can't set block {list(inds)} with shape {expected_shape}"
                f" to an array with shape {value.shape}"
            )
        _check_block_dtype(value, self._dtype, inds)
        self._blocks[tuple(inds)] = value

    ## Element level access
    def _getelement(self, blockindex: BlockIndex):
        return self._present_block(blockindex.block)[blockindex.offset]

    def _setelement(self, blockindex: BlockIndex, value):
        self._present_block(blockindex.block)[blockindex.offset] = value

    ## Views
    def _view_block(self, inds: MultiStdIndex):
        return self._present_block(inds)

    def _view_blockindexrange(self, inds: MultiStdIndex, offsets: Tuple[range, ...]):
        idx = tuple(slice(rng.start, rng.stop) for rng in offsets)
        return self._present_block(inds)[idx]

    def _view_blockrange(self, brange: BlockRange):
        # Slicing the block grid shares the block objects and their slots
        idx = tuple(slice(rng.start, rng.stop) for rng in brange.ranges)
        axes = tuple(axis.subaxis(rng) for axis, rng in zip(self.axes, brange.ranges))
        return BlockArray(self._blocks[idx], axes, dtype=self._dtype)

    def _view_elements(self, selection: Sequence[AxisSelection]):
        axis_choices = []
        lengths = []
        for blocks, offsets, axis_lengths in selection:
            if axis_lengths is None:
                axis_choices.append([(blocks, offsets)])
            else:
                axis_choices.append([
                    (block, slice(offset.start, offset.stop))
                    for block, offset in zip(blocks, offsets)
                ])
                lengths.append(axis_lengths)

        if len(lengths) == 0:
            inds = tuple(block for block, _ in chain(*axis_choices))
            offsets = tuple(offset for _, offset in chain(*axis_choices))
            return self._present_block(inds)[offsets]

        grid = np.empty(tuple(len(axis_lengths) for axis_lengths in lengths), dtype=object)
        flat_grid = grid.reshape(-1)
        for ii, choice in enumerate(product(*axis_choices)):
            inds = tuple(block for block, _ in choice)
            idx = tuple(offset for _, offset in choice)
            flat_grid[ii] = self._present_block(inds)[idx]

        axes = tuple(BlockedRange.from_lengths(axis_lengths) for axis_lengths in lengths)
        return BlockArray(grid, axes, dtype=self._dtype)

    def _iter_block_slices(self):
        """
        Yield the block grid index and global element slices of each block
        """
        # cumulative block shape gives lower/upper element index bounds for
        # each block
        cum_bshape = [
            [nn for nn in accumulate(axis_lengths, initial=0)]
            for axis_lengths in self.bshape
        ]
        for inds in np.ndindex(*self.blocksize):
            lbs = [ax_bounds[ii] for ii, ax_bounds in zip(inds, cum_bshape)]
            ubs = [ax_bounds[ii+1] for ii, ax_bounds in zip(inds, cum_bshape)]
            yield inds, tuple(slice(lb, ub) for lb, ub in zip(lbs, ubs))

    def _assign(self, value):
        value = np.asarray(value)
        try:
            value = np.broadcast_to(value, self.shape)
        except ValueError as err:
            raise DimensionMismatch(
                f"Can't assign values with shape {value.shape} to array with"
                f" shape {self.shape}"
            ) from err
        # Check all blocks first so a failure leaves the array unmodified
        self._check_initialized()
        for inds, idx in self._iter_block_slices():
            self._blocks[inds][...] = value[idx]

    ## Methods for converting to a flat array
    def to_ndarray(self) -> np.ndarray:
        """
        Return a newly allocated monolithic ndarray equal to the block array

        Raises
        ------
        UninitializedBlockAccess
            If any block has not been assigned
        """
        self._check_initialized()
        ret_array = np.empty(self.shape, dtype=self.dtype)

        # loop through each block and assign its elements to the appropriate
        # part of the monolithic ndarray
        for inds, idx in self._iter_block_slices():
            ret_array[idx] = self._blocks[inds]
        return ret_array

    def __array__(self, dtype=None, copy=None):
        # Blocks are stored separately so a monolithic array is always new
        if copy is False:
            raise ValueError(
                f"Can't convert {self.summary()} to an ndarray without copying"
            )
        return np.asarray(self.to_ndarray(), dtype=dtype)

    ## Copy methods
    def copy(self) -> 'BlockArray[T]':
        """Return a copy with copies of every block"""
        grid = np.empty(self._blocks.shape, dtype=object)
        for inds in np.ndindex(*grid.shape):
            block = self._blocks[inds]
            grid[inds] = UNINITIALIZED if block is UNINITIALIZED else block.copy()
        return BlockArray(grid, self.axes, dtype=self._dtype)

    def map_blocks(self, func) -> 'BlockArray':
        """
        Return a block array with `func` applied to every block

        `func` must return arrays with the shape of its input block.
        """
        grid = np.empty(self._blocks.shape, dtype=object)
        for inds in np.ndindex(*grid.shape):
            grid[inds] = np.asarray(func(self._present_block(inds)))
        return BlockArray(grid, self.axes)

    def repartition(self, *lengths) -> 'BlockArray[T]':
        """
        Return a copy of the array with a different block partition

        Parameters
        ----------
        *lengths : Union[AbstractAxisPartition, Sequence[int]]
            The new partition of each dimension

        Raises
        ------
        DimensionMismatch
            If the new partitions don't cover the array's shape
        """
        axes = axes_for_shape(self.shape, lengths)

        grid = np.empty(tuple(axis.blockcount() for axis in axes), dtype=object)
        for inds in np.ndindex(*grid.shape):
            shape = tuple(axis.blocklength(ii) for axis, ii in zip(axes, inds))
            grid[inds] = np.empty(shape, dtype=self.dtype)

        # Copy each block of the common refinement from its source block into
        # its destination block
        src_pieces = []
        dst_pieces = []
        for src_axis, dst_axis in zip(self.axes, axes):
            refined = refine(src_axis, dst_axis)
            src_pieces.append(list(PartitionReconciler(src_axis, refined, check=False)))
            dst_pieces.append(list(PartitionReconciler(dst_axis, refined, check=False)))

        for src_piece, dst_piece in zip(product(*src_pieces), product(*dst_pieces)):
            src = self.view(join_pieces(src_piece))
            dst_inds = tuple(piece.block.n[0] for piece in dst_piece)
            dst_idx = tuple(
                slice(piece.indices[0].start, piece.indices[0].stop) for piece in dst_piece
            )
            grid[dst_inds][dst_idx] = src

        _logger.debug("Repartitioned %s into blocks %s", self.summary(), grid.shape)
        return BlockArray(grid, axes, dtype=self._dtype)


def _validate_block_shapes(
        blocks: np.ndarray,
        axes: Tuple[AbstractAxisPartition, ...],
        dtype: Optional[np.dtype]=None
    ):
    """
    Validate blocks have shapes (and dtypes) consistent with the axes

    The shapes of blocks have to behave like a multiplication table to be
    consistent, where the 'edges' of the multiplication table are given by the
    block lengths along each axis.
    """
    bshape = tuple(axis.blocklengths() for axis in axes)
    for inds in np.ndindex(*blocks.shape):
        block = blocks[inds]
        if block is UNINITIALIZED:
            continue
        ref_shape = tuple(lengths[ii] for lengths, ii in zip(bshape, inds))
        block_shape = getattr(block, 'shape', None)
        if block_shape is None:
            raise InconsistentBlockShapes(
                f"Block at {list(inds)} of type {type(block)} is not an array"
            )
        if tuple(block_shape) != ref_shape:
            raise InconsistentBlockShapes(
                f"Block at {list(inds)} with shape {tuple(block_shape)} is"
                f" inconsistent with block lengths {bshape}"
            )
        _check_block_dtype(block, dtype, inds)


def _check_block_dtype(block, dtype: Optional[np.dtype], inds: MultiStdIndex):
    if dtype is None:
        return
    if not np.can_cast(block.dtype, dtype, casting='same_kind'):
        raise TypeError(
            f"Block at {list(inds)} with dtype {block.dtype} can't be stored in"
            f" an array with dtype {dtype}"
        )


def axes_for_shape(shape: Shape, lengths) -> Tuple[AbstractAxisPartition, ...]:
    """
    Return axis partitions from block lengths, checking they cover `shape`

    Raises
    ------
    DimensionMismatch
        If the number of partitions or their lengths don't match `shape`
    """
    if len(lengths) != len(shape):
        raise DimensionMismatch(
            f"{len(lengths)} block partitions given for array with {len(shape)} dimensions"
        )
    axes = tuple(as_axis(axis_lengths) for axis_lengths in lengths)
    for dim, (axis, size) in enumerate(zip(axes, shape)):
        if len(axis) != size:
            raise DimensionMismatch(
                f"Block lengths {axis.blocklengths()} sum to {len(axis)} but"
                f" dimension {dim} has size {size}"
            )
    return axes


## `BlockArray` creation routines
def flatten_array(array: NestedArray[T]) -> Tuple[list, Shape]:
    """
    Return a flat list and shape from a nested list/tuple

    Parameters
    ----------
    array :
        A nested list/tuple. Anything that isn't a list/tuple is a leaf.

    Returns
    -------
    flat_array :
        The flattened array
    shape :
        The shape of the nested array
    """
    def check_is_nested(array):
        """
        Check whether an array is nested
        """
        # Checks whether each element of an array is another array
        is_array = [isinstance(elem, (list, tuple)) for elem in array]
        is_array_count = is_array.count(True)
        if len(is_array) > 0 and is_array_count == len(is_array):
            # Make sure the nested sizes are correct
            if not all(len(elem) == len(array[0]) for elem in array):
                raise InconsistentBlockShapes("Improperly nested array of blocks")
            return True
        elif is_array_count == 0:
            return False
        else:
            raise InconsistentBlockShapes("Improperly nested array of blocks")

    flat_array = list(array)
    shape = (len(flat_array),)
    while check_is_nested(flat_array):
        shape += (len(flat_array[0]),)
        flat_array = [elem for elem in chain(*flat_array)]

    return flat_array, shape


def _object_grid(blocks) -> np.ndarray:
    if isinstance(blocks, np.ndarray) and blocks.dtype == object:
        return blocks
    elif isinstance(blocks, (list, tuple)):
        flat_blocks, shape = flatten_array(blocks)
        grid = np.empty(shape, dtype=object)
        flat_grid = grid.reshape(-1)
        # Assigning one at a time stops numpy from unpacking the blocks
        for ii, block in enumerate(flat_blocks):
            if block is not UNINITIALIZED and not isinstance(block, np.ndarray):
                block = np.asarray(block)
            flat_grid[ii] = block
        return grid
    else:
        raise TypeError(
            "Expected `blocks` to be of type `{list, tuple, np.ndarray}`"
            f" not {type(blocks)}."
        )


def _infer_axes(grid: np.ndarray) -> Tuple[BlockedRange, ...]:
    """
    Return block lengths of each axis from the blocks along the grid's 'edges'
    """
    for inds in np.ndindex(*grid.shape):
        block = grid[inds]
        if block is not UNINITIALIZED and np.ndim(block) != grid.ndim:
            raise InconsistentBlockShapes(
                f"Block at {list(inds)} has {np.ndim(block)} dimensions but"
                f" the block grid has {grid.ndim}"
            )

    axes = []
    for dim in range(grid.ndim):
        lengths = []
        for ii in range(grid.shape[dim]):
            present = [
                block for block in np.take(grid, [ii], axis=dim).flat
                if block is not UNINITIALIZED
            ]
            if len(present) == 0:
                raise DimensionMismatch(
                    f"Can't infer the length of block {ii} along dimension {dim};"
                    " pass the block lengths explicitly"
                )
            lengths.append(present[0].shape[dim])
        axes.append(BlockedRange.from_lengths(lengths))
    return tuple(axes)


def mortar(blocks, *lengths) -> BlockArray:
    """
    Return a `BlockArray` assembled from blocks

    Parameters
    ----------
    blocks : Union[NestedArray[np.ndarray], np.ndarray]
        A nested list/tuple of blocks, or a numpy object array of blocks. The
        blocks are stored without copying.
    *lengths : Union[AbstractAxisPartition, Sequence[int]]
        Optional block lengths along each dimension. If not supplied, these are
        inferred from the shapes of the blocks.

    Raises
    ------
    InconsistentBlockShapes
        If blocks sharing a row/column/... disagree in their shape along it

    Examples
    --------
    >>> A = mortar([[np.ones((1, 3)), 2*np.ones((1, 2))],
    ...             [3*np.ones((2, 3)), 4*np.ones((2, 2))]])
    >>> A.bshape
    ((1, 2), (3, 2))
    """
    grid = _object_grid(blocks)
    if len(lengths) == 0:
        axes = _infer_axes(grid)
    elif len(lengths) != grid.ndim:
        raise DimensionMismatch(
            f"{len(lengths)} block partitions given for a block grid with"
            f" {grid.ndim} dimensions"
        )
    else:
        axes = tuple(as_axis(axis_lengths) for axis_lengths in lengths)

    ret = BlockArray(grid, axes)
    _logger.debug("Assembled %s from blocks", ret.summary())
    return ret


def from_array(array, *lengths) -> BlockArray:
    """
    Return a `BlockArray` with blocks copied from a monolithic array

    Parameters
    ----------
    array : np.ndarray
        The monolithic array
    *lengths : Union[AbstractAxisPartition, Sequence[int]]
        The block lengths along each dimension

    Raises
    ------
    DimensionMismatch
        If the block lengths don't sum to the array's shape
    """
    array = np.asarray(array)
    axes = axes_for_shape(array.shape, lengths)
    starts = [axis.blockstarts() for axis in axes]
    stops = [axis.blockstops() for axis in axes]

    grid = np.empty(tuple(axis.blockcount() for axis in axes), dtype=object)
    for inds in np.ndindex(*grid.shape):
        idx = tuple(
            slice(ax_starts[ii], ax_stops[ii])
            for ii, ax_starts, ax_stops in zip(inds, starts, stops)
        )
        grid[inds] = array[idx].copy()

    ret = BlockArray(grid, axes, dtype=array.dtype)
    _logger.debug("Split array with shape %s into %s", array.shape, ret.summary())
    return ret


def undef_blocks(*lengths, dtype=float) -> BlockArray:
    """
    Return a `BlockArray` where every block is uninitialized

    Blocks have to be assigned with `setblock` before they can be read; reading
    an uninitialized block raises `UninitializedBlockAccess`.

    Parameters
    ----------
    *lengths : Union[AbstractAxisPartition, Sequence[int]]
        The block lengths along each dimension
    dtype :
        The element type of the array
    """
    axes = tuple(as_axis(axis_lengths) for axis_lengths in lengths)
    grid = np.empty(tuple(axis.blockcount() for axis in axes), dtype=object)
    grid.fill(UNINITIALIZED)
    return BlockArray(grid, axes, dtype=dtype)


def make_create_array(create_numpy_array):
    """
    Derive a `BlockArray` creation routine from a `numpy` creation routine

    Parameters
    ----------
    create_numpy_array :
        A numpy array creation routine with the signature
        `create_numpy_array(shape, dtype=dtype)`
        Examples are `np.zeros`, `np.ones`, etc.
    """
    def create_block_array(*lengths, dtype=float) -> BlockArray:
        axes = tuple(as_axis(axis_lengths) for axis_lengths in lengths)
        grid = np.empty(tuple(axis.blockcount() for axis in axes), dtype=object)
        for inds in np.ndindex(*grid.shape):
            shape = tuple(axis.blocklength(ii) for axis, ii in zip(axes, inds))
            grid[inds] = create_numpy_array(shape, dtype=dtype)
        return BlockArray(grid, axes, dtype=dtype)

    return create_block_array

empty = make_create_array(np.empty)

zeros = make_create_array(np.zeros)

ones = make_create_array(np.ones)
