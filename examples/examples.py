"""
A collection of examples illustrating some use cases for blockedarray
"""

import numpy as np

from blockedarray import Block, BlockIndex, BlockRange
from blockedarray import blockarray as ba
from blockedarray.pseudoblockarray import PseudoBlockArray

## Storing block matrices
A00 = np.array([[1., 2.], [4., 5.]])
A01 = np.array([[3.], [6.]])
A10 = np.array([[7., 8.]])
A11 = np.array([[9.]])

A = ba.mortar([[A00, A01], [A10, A11]])
print(A)

B = A.copy()

## Blocks are stored without copying
A[Block(1, 1)] = np.array([[10.]])
assert A.getblock(0, 0) is A00

## Element and block-index access
assert A[2, 2] == 10.
assert A[BlockIndex((1, 0), (0, 1))] == 8.

## Views alias the original blocks
V = A[1:3, :]
V[0, 0] = -4.
assert A00[1, 0] == -4.
W = A.view(BlockRange(2, range(1, 2)))
print(W)

## Contiguous storage
x = PseudoBlockArray(np.arange(3.), [2, 1])
y = A.view(Block(0, 0)) @ x.view(Block(0))

## Basic math operations on differently partitioned arrays
C = A + B
C = 2 * A
D = A + PseudoBlockArray(np.ones((3, 3)), [1, 2], [3])
print(D.bshape)

## Changing the partition
E = A.repartition([1, 1, 1], [3])
print(E.to_ndarray())
