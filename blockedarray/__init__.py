"""
This package provides block arrays: arrays partitioned into blocks along every
dimension that still behave like a single n-dimensional array

Two storage strategies are provided:
    `BlockArray` :
        stores each block separately, so blocks can be extracted and replaced
        without copying
    `PseudoBlockArray` :
        stores the whole array in one buffer, so the monolithic array is
        available without copying
"""

from .config import config
from .errors import (
    InvalidPartition,
    IncompatiblePartitions,
    DimensionMismatch,
    InconsistentBlockShapes,
    BlockIndexOutOfRange,
    IndexOutOfRange,
    UninitializedBlockAccess,
    BlockBoundsError
)
from .axis import (
    AbstractAxisPartition, BlockedRange, UnblockedRange, blockedrange, blockisequal,
    refine
)
from .blockindex import (
    Block, BlockIndex, BlockIndexRange, BlockRange,
    blockindex_to_global, global_to_blockindex
)
from .checks import blockcheckbounds
from .abstractarray import AbstractBlockArray
from .blockarray import BlockArray, UNINITIALIZED, mortar, undef_blocks
from .pseudoblockarray import PseudoBlockArray
from .reconcile import PartitionReconciler
from .blockops import asblocked, repartition

from . import blockarray
from . import pseudoblockarray
from . import blockops
