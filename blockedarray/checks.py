"""
Bounds checking for block-level access
"""

from typing import Optional, Sequence
import numbers

from .errors import BlockBoundsError


def checkblockbounds(axes, inds: Sequence[int], description: Optional[str]=None):
    """
    Raise `BlockBoundsError` if block indices are not valid for the given axes

    Parameters
    ----------
    axes : Tuple[AbstractAxisPartition, ...]
        The partition of each dimension
    inds : Sequence[int]
        The block index along each dimension. Negative indices are rejected.
    description : Optional[str]
        A description of the indexed array used in the error message
    """
    if len(inds) != len(axes):
        raise BlockBoundsError(description, inds)

    for axis, ind in zip(axes, inds):
        if not isinstance(ind, numbers.Integral) or isinstance(ind, bool):
            raise BlockBoundsError(description, inds)
        if not 0 <= ind < axis.blockcount():
            raise BlockBoundsError(description, inds)


def checkblockrange(axes, ranges: Sequence[range], description: Optional[str]=None):
    """
    Raise `BlockBoundsError` if ranges of block indices exceed the given axes

    Empty ranges may start at the number of blocks along their axis.
    """
    if len(ranges) != len(axes):
        raise BlockBoundsError(description, ranges)

    for axis, rng in zip(axes, ranges):
        nblock = axis.blockcount()
        if not (0 <= rng.start <= nblock and rng.stop <= nblock):
            raise BlockBoundsError(description, ranges)


def blockcheckbounds(array, *inds: int):
    """
    Raise `BlockBoundsError` if block indices are out of bounds for an array

    This dispatches to `array.blockcheckbounds` so block array types can
    customize the check.

    Examples
    --------
    >>> from blockedarray.blockarray import zeros
    >>> A = zeros([1, 1], [2, 1])
    >>> blockcheckbounds(A, 3, 1)
    Traceback (most recent call last):
    ...
    BlockBoundsError: attempt to access 2×2-blocked 2×3 BlockArray at block index [3, 1]
    """
    array.blockcheckbounds(*inds)
