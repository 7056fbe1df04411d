"""
Operations on block arrays, including block arrays with different partitions

Elementwise operations between two block arrays are done block by block. If the
arrays are partitioned differently, the result is partitioned on the common
refinement of both partitions and each of its blocks is computed from views of
the input blocks (see `reconcile.PartitionReconciler`).
"""

from typing import Callable, Union, Optional
import functools
import logging
import operator

import numpy as np

from .abstractarray import AbstractBlockArray
from .axis import UnblockedRange, blockisequal
from .blockarray import BlockArray, from_array
from .config import config, parse_storage
from .errors import DimensionMismatch
from .pseudoblockarray import PseudoBlockArray
from .reconcile import reconcile_axes, join_pieces
from .typing import Scalar

_logger = logging.getLogger(__name__)

Operand = Union[AbstractBlockArray, np.ndarray, Scalar]


def _as_block_array(array) -> PseudoBlockArray:
    # A plain array has a single block along each axis
    array = np.asarray(array)
    return PseudoBlockArray(array, *(UnblockedRange(n) for n in array.shape))


## Binary operations
def broadcast_blockwise(
        op: Callable[[np.ndarray, np.ndarray], np.ndarray],
        a: Operand,
        b: Operand
    ) -> AbstractBlockArray:
    """
    Compute an elementwise binary operation on block arrays

    Parameters
    ----------
    op : Callable
        A function with signature `op(a, b) -> c`, where `a`, `b`, `c` are
        arrays of the same shape
    a, b : Union[AbstractBlockArray, np.ndarray, Scalar]
        The operands. At least one should be a block array; scalars are
        applied to every block and plain arrays are treated as a single block.

    Returns
    -------
    AbstractBlockArray
        A `PseudoBlockArray` if both operands are pseudo block arrays with the
        same partition, otherwise a `BlockArray` partitioned on the common
        refinement of the operands' partitions

    Raises
    ------
    DimensionMismatch
        If the operands have different shapes
    """
    a_isblock = isinstance(a, AbstractBlockArray)
    b_isblock = isinstance(b, AbstractBlockArray)
    if not a_isblock and not b_isblock:
        return op(a, b)
    elif not b_isblock and np.ndim(b) == 0:
        return a.map_blocks(lambda block: op(block, b))
    elif not a_isblock and np.ndim(a) == 0:
        return b.map_blocks(lambda block: op(a, block))

    a = a if a_isblock else _as_block_array(a)
    b = b if b_isblock else _as_block_array(b)
    if a.shape != b.shape:
        raise DimensionMismatch(
            f"Can't combine arrays with shapes {a.shape} and {b.shape}"
        )

    if (
            isinstance(a, PseudoBlockArray) and isinstance(b, PseudoBlockArray)
            and blockisequal(a.axes, b.axes)
        ):
        return PseudoBlockArray(np.asarray(op(a.buffer, b.buffer)), *a.axes)

    axes, pieces_a, pieces_b = [], [], []
    for axis_a, axis_b in zip(a.axes, b.axes):
        refined, axis_pieces_a, axis_pieces_b = reconcile_axes(axis_a, axis_b)
        axes.append(refined)
        pieces_a.append(axis_pieces_a)
        pieces_b.append(axis_pieces_b)

    grid = np.empty(tuple(axis.blockcount() for axis in axes), dtype=object)
    for inds in np.ndindex(*grid.shape):
        sub_a = a.view(join_pieces([pieces[ii] for pieces, ii in zip(pieces_a, inds)]))
        sub_b = b.view(join_pieces([pieces[ii] for pieces, ii in zip(pieces_b, inds)]))
        grid[inds] = np.asarray(op(sub_a, sub_b))

    _logger.debug(
        "Applied %s blockwise on %s and %s", getattr(op, '__name__', op),
        a.summary(), b.summary()
    )
    return BlockArray(grid, axes)

add = functools.partial(broadcast_blockwise, operator.add)

sub = functools.partial(broadcast_blockwise, operator.sub)

mul = functools.partial(broadcast_blockwise, operator.mul)

truediv = functools.partial(broadcast_blockwise, operator.truediv)


## Unary operations
def _elementwise_unary_op(
        op: Callable[[np.ndarray], np.ndarray], a: AbstractBlockArray
    ) -> AbstractBlockArray:
    """
    Compute elementwise unary operation on a block array

    This creates a new block array with the same partition by calling `op` on
    each block.
    """
    return a.map_blocks(op)

neg = functools.partial(_elementwise_unary_op, operator.neg)

pos = functools.partial(_elementwise_unary_op, operator.pos)

def scalar_mul(alpha: Scalar, a: AbstractBlockArray) -> AbstractBlockArray:
    """
    Multiply a block array by a scalar
    """
    return _elementwise_unary_op(lambda block: alpha*block, a)


## Partitioning
def repartition(array: AbstractBlockArray, *lengths) -> AbstractBlockArray:
    """
    Return a block array with the same elements and a different partition

    `BlockArray`s are copied into new blocks while `PseudoBlockArray`s share
    their buffer with the result.
    """
    return array.repartition(*lengths)


def asblocked(array, *lengths, storage: Optional[str]=None) -> AbstractBlockArray:
    """
    Return a block array with the given block lengths from a monolithic array

    Parameters
    ----------
    array : np.ndarray
        The monolithic array
    *lengths : Union[AbstractAxisPartition, Sequence[int]]
        The block lengths along each dimension
    storage : Optional[str]
        Either 'block' to copy `array` into a `BlockArray` or 'pseudo' to wrap
        it in a `PseudoBlockArray`. Defaults to the `array.storage` config
        value.
    """
    if storage is None:
        storage = config.get("array.storage")
    storage = parse_storage(storage)
    if storage == 'block':
        return from_array(array, *lengths)
    else:
        return PseudoBlockArray(array, *lengths)
