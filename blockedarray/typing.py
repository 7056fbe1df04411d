"""
Modules to collect all types used for type hints
"""
from typing import TypeVar, Tuple, List, Union, Sequence

import numpy as np

Scalar = Union[int, float, complex, np.generic]

T = TypeVar("T")
NestedArray = Union['NestedArray', Tuple[T, ...], List[T]]

Shape = Tuple[int, ...]

## Block partition types
# Lengths of each block along one axis, e.g. `(2, 3, 1)`
AxisLengths = Sequence[int]
# Exclusive stop index of each block along one axis, e.g. `(2, 5, 6)`
AxisStops = Tuple[int, ...]
# Block lengths along every axis, e.g. `((2, 2), (1, 3))`
BlockShape = Tuple[Tuple[int, ...], ...]

## Indexing types
# These types represent an index to single element or block
StdIndex = int
MultiStdIndex = Tuple[StdIndex, ...]

# Special type for expanding missing indices
EllipsisType = type(...)

# An element index along a single axis
ElementIndex = Union[int, slice, range]
MultiElementIndex = Tuple[Union[ElementIndex, EllipsisType], ...]

