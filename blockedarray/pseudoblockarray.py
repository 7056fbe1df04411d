"""
This module contains the pseudo block array definition

A `PseudoBlockArray` stores the whole array in one contiguous buffer and
superimposes a block structure on it. Converting to a monolithic array is free
while extracting a block requires a copy (or a view into the buffer).
"""

from typing import TypeVar, Tuple, Union, Sequence
import logging

import numpy as np

from .abstractarray import AbstractBlockArray, AxisSelection
from .axis import AbstractAxisPartition, as_axis
from .blockarray import axes_for_shape
from .blockindex import BlockIndex, BlockRange
from .errors import DimensionMismatch
from .typing import MultiStdIndex, AxisLengths

T = TypeVar('T')

_logger = logging.getLogger(__name__)


class PseudoBlockArray(AbstractBlockArray[T]):
    """
    An n-dimensional block array stored in a single contiguous buffer

    Parameters
    ----------
    array : np.ndarray
        The buffer. Numpy arrays are wrapped without copying so changes to the
        block array are visible in `array` and vice versa.
    *lengths : Union[AbstractAxisPartition, Sequence[int]]
        The block lengths (or partition) along each dimension

    Raises
    ------
    DimensionMismatch
        If the block lengths along a dimension don't sum to the buffer's size
        along it

    Attributes
    ----------
    buffer : np.ndarray
        The underlying contiguous buffer
    """

    def __init__(
            self,
            array: np.ndarray,
            *lengths: Union[AbstractAxisPartition, AxisLengths]
        ):
        self._buffer = np.asarray(array)
        self._axes = axes_for_shape(self._buffer.shape, lengths)

    @property
    def buffer(self) -> np.ndarray:
        return self._buffer

    @property
    def dtype(self) -> np.dtype:
        return self._buffer.dtype

    def _block_slices(self, inds: MultiStdIndex) -> Tuple[slice, ...]:
        return tuple(
            slice(axis.blockstart(ii), axis.blockstop(ii))
            for axis, ii in zip(self.axes, inds)
        )

    ## Block level access
    def getblock(self, *inds: int) -> np.ndarray:
        """
        Return a copy of the block at the given block indices

        Use `view` to get a block that aliases the buffer, or `getblock_into`
        to copy into an existing array.

        Raises
        ------
        BlockBoundsError
            If the block indices are out of bounds
        """
        self.blockcheckbounds(*inds)
        return self._buffer[self._block_slices(inds)].copy()

    def setblock(self, value, *inds: int):
        """
        Copy `value` into the block at the given block indices

        Raises
        ------
        BlockBoundsError
            If the block indices are out of bounds
        DimensionMismatch
            If `value` doesn't have the block's shape
        """
        self.blockcheckbounds(*inds)
        value = np.asarray(value)
        expected_shape = self.blockshape(*inds)
        if value.shape != expected_shape:
            raise DimensionMismatch(
                f"Can't set block {list(inds)} with shape {expected_shape}"
                f" to an array with shape {value.shape}"
            )
        self._buffer[self._block_slices(inds)] = value

    ## Element level access
    def _getelement(self, blockindex: BlockIndex):
        return self._buffer[self._global(blockindex)]

    def _setelement(self, blockindex: BlockIndex, value):
        self._buffer[self._global(blockindex)] = value

    def _global(self, blockindex: BlockIndex) -> MultiStdIndex:
        return tuple(
            axis.blockstart(block) + offset
            for axis, block, offset in zip(self.axes, blockindex.block, blockindex.offset)
        )

    ## Views
    def _view_block(self, inds: MultiStdIndex) -> np.ndarray:
        return self._buffer[self._block_slices(inds)]

    def _view_blockindexrange(self, inds: MultiStdIndex, offsets: Tuple[range, ...]):
        idx = tuple(
            slice(axis.blockstart(ii)+rng.start, axis.blockstart(ii)+rng.stop)
            for axis, ii, rng in zip(self.axes, inds, offsets)
        )
        return self._buffer[idx]

    def _view_blockrange(self, brange: BlockRange) -> 'PseudoBlockArray[T]':
        idx = []
        axes = []
        for axis, rng in zip(self.axes, brange.ranges):
            starts = axis.blockstarts()
            stops = axis.blockstops()
            if len(rng) == 0:
                start = starts[rng.start] if rng.start < len(starts) else len(axis)
                idx.append(slice(start, start))
            else:
                idx.append(slice(starts[rng.start], stops[rng.stop-1]))
            axes.append(axis.subaxis(rng))
        return PseudoBlockArray(self._buffer[tuple(idx)], *axes)

    def _view_elements(self, selection: Sequence[AxisSelection]):
        idx = []
        lengths = []
        for axis, (blocks, offsets, axis_lengths) in zip(self.axes, selection):
            if axis_lengths is None:
                idx.append(axis.blockstart(blocks) + offsets)
            elif len(blocks) == 0:
                idx.append(slice(0, 0))
                lengths.append(axis_lengths)
            else:
                start = axis.blockstart(blocks[0]) + offsets[0].start
                stop = axis.blockstart(blocks[-1]) + offsets[-1].stop
                idx.append(slice(start, stop))
                lengths.append(axis_lengths)

        if len(lengths) == 0:
            return self._buffer[tuple(idx)]
        return PseudoBlockArray(self._buffer[tuple(idx)], *lengths)

    def _assign(self, value):
        try:
            self._buffer[...] = value
        except ValueError as err:
            raise DimensionMismatch(
                f"Can't assign values with shape {np.shape(value)} to array with"
                f" shape {self.shape}"
            ) from err

    ## Methods for converting to a flat array
    def to_ndarray(self) -> np.ndarray:
        """
        Return the underlying buffer (no copy)
        """
        return self._buffer

    ## Copy methods
    def copy(self) -> 'PseudoBlockArray[T]':
        """Return a copy with a copied buffer"""
        return PseudoBlockArray(self._buffer.copy(), *self.axes)

    def map_blocks(self, func) -> 'PseudoBlockArray':
        """
        Return a pseudo block array with `func` applied to the whole buffer

        `func` must act elementwise so that applying it to the buffer is
        equivalent to applying it to each block.
        """
        return PseudoBlockArray(np.asarray(func(self._buffer)), *self.axes)

    def repartition(self, *lengths) -> 'PseudoBlockArray[T]':
        """
        Return a pseudo block array over the same buffer with a different partition
        """
        return PseudoBlockArray(self._buffer, *lengths)


## `PseudoBlockArray` creation routines
def make_create_array(create_numpy_array):
    """
    Derive a `PseudoBlockArray` creation routine from a `numpy` creation routine
    """
    def create_pseudo_block_array(*lengths, dtype=float) -> PseudoBlockArray:
        axes = tuple(as_axis(axis_lengths) for axis_lengths in lengths)
        buffer = create_numpy_array(tuple(len(axis) for axis in axes), dtype=dtype)
        ret = PseudoBlockArray(buffer, *axes)
        _logger.debug("Allocated %s", ret.summary())
        return ret

    return create_pseudo_block_array

empty = make_create_array(np.empty)

zeros = make_create_array(np.zeros)

ones = make_create_array(np.ones)
