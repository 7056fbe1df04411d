"""
Exceptions raised by block arrays and their partitions
"""


class _BaseBlockValueError(ValueError):
    _msg = ""

    def __init__(self, *args):
        super().__init__(self._msg.format(*args))


class _BaseBlockIndexError(IndexError):
    _msg = ""

    def __init__(self, *args):
        super().__init__(self._msg.format(*args))


class InvalidPartition(_BaseBlockValueError):
    _msg = "invalid block partition {0!r}; {1}"


class IncompatiblePartitions(ValueError):
    pass


class DimensionMismatch(ValueError):
    pass


class InconsistentBlockShapes(ValueError):
    pass


class BlockIndexOutOfRange(_BaseBlockIndexError):
    _msg = "block index {0} out of range for axis with {1} blocks"


class IndexOutOfRange(_BaseBlockIndexError):
    _msg = "index {0} out of range for axis with length {1}"


class UninitializedBlockAccess(RuntimeError):
    _msg = "access to uninitialized block at block index {0}"

    def __init__(self, indices):
        self.indices = tuple(indices)
        super().__init__(self._msg.format(list(self.indices)))


class BlockBoundsError(IndexError):
    """
    Raised when a block indexing operation accesses an out-of-bounds block

    Parameters
    ----------
    array : str
        A description of the block array that was indexed
    indices : Tuple[int, ...]
        The attempted block indices
    """

    def __init__(self, array=None, indices=()):
        self.array = array
        self.indices = tuple(indices)
        if array is None:
            msg = f"attempt to access block index {list(self.indices)}"
        else:
            msg = f"attempt to access {array} at block index {list(self.indices)}"
        super().__init__(msg)
