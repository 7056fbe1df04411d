"""
Test the operations in `blockedarray.pseudoblockarray`
"""

from itertools import product

import pytest
import numpy as np

from blockedarray import pseudoblockarray as pba
from blockedarray.blockindex import Block, BlockIndex, BlockRange
from blockedarray.errors import BlockBoundsError, DimensionMismatch, IndexOutOfRange

# pylint: disable=missing-function-docstring

@pytest.fixture()
def setup_parray():
    # `arr[i, j] == 1 + i + 5*j`
    arr = np.arange(1, 26).reshape(5, 5, order='F')
    return pba.PseudoBlockArray(arr, [3, 2], [1, 4]), arr


class TestPseudoBlockArray:

    def test_properties(self, setup_parray):
        A, arr = setup_parray
        assert A.buffer is arr
        assert A.shape == (5, 5)
        assert A.bshape == ((3, 2), (1, 4))
        assert A.dtype == arr.dtype
        assert A.summary() == "2×2-blocked 5×5 PseudoBlockArray"

    def test_create_mismatch(self, setup_parray):
        _, arr = setup_parray
        with pytest.raises(DimensionMismatch):
            pba.PseudoBlockArray(arr, [3, 3], [1, 4])
        with pytest.raises(DimensionMismatch):
            pba.PseudoBlockArray(arr, [5])

    def test_blockindex(self, setup_parray):
        A, _ = setup_parray
        assert A[BlockIndex((0, 1), (0, 1))] == 11
        assert A[BlockIndex((1, 1), (1, 2))] == 20
        assert A[Block(1, 1)[1, 2]] == 20

    def test_getelement(self, setup_parray):
        A, arr = setup_parray
        assert A[4, 4] == 25
        A[4, 4] = 0
        assert arr[4, 4] == 0
        with pytest.raises(IndexOutOfRange):
            A[5, 0]

    def test_to_ndarray(self, setup_parray):
        A, arr = setup_parray
        assert A.to_ndarray() is arr
        array = A.to_ndarray()
        for coords in product(range(5), range(5)):
            assert array[coords] == A[coords]
        assert np.array_equal(np.asarray(A), arr)

    def test_array_copy(self, setup_parray):
        A, arr = setup_parray
        array = np.array(A)
        assert not np.shares_memory(array, arr)
        array[0, 0] = -1
        assert arr[0, 0] == 1

        assert not np.shares_memory(A.__array__(copy=True), arr)
        assert A.__array__(copy=False) is arr
        assert np.shares_memory(np.asarray(A), arr)
        with pytest.raises(ValueError):
            A.__array__(dtype=np.float32, copy=False)

    def test_block_bounds(self, setup_parray):
        A, _ = setup_parray
        A.getblock(1, 1)
        with pytest.raises(BlockBoundsError):
            A.getblock(2, 0)

    def test_fill(self, setup_parray):
        A, arr = setup_parray
        A.fill(7)
        assert np.all(arr == 7)

    def test_copy(self, setup_parray):
        A, arr = setup_parray
        B = A.copy()
        assert not np.shares_memory(B.buffer, arr)
        assert B.axes == A.axes
        B[0, 0] = -1
        assert arr[0, 0] == 1


class TestBlockAccess:

    def test_getblock_copies(self, setup_parray):
        A, arr = setup_parray
        block = A.getblock(0, 1)
        assert np.array_equal(block, arr[:3, 1:])
        assert not np.shares_memory(block, arr)
        block[...] = 0
        assert arr[0, 1] == 6

        block = A[Block(0, 1)]
        assert not np.shares_memory(block, arr)

    def test_getblock_into(self, setup_parray):
        A, arr = setup_parray
        dest = np.zeros((2, 4), dtype=arr.dtype)
        assert A.getblock_into(dest, 1, 1) is dest
        assert np.array_equal(dest, arr[3:, 1:])

        x = np.zeros((1, 2))
        B = pba.PseudoBlockArray(np.ones((2, 3)), [1, 1], [2, 1])
        B.getblock_into(x, 1, 0)
        assert np.all(x == 1)

    def test_getblock_into_invalid(self, setup_parray):
        A, _ = setup_parray
        with pytest.raises(DimensionMismatch):
            A.getblock_into(np.zeros((4, 2)), 1, 1)
        with pytest.raises(BlockBoundsError):
            A.getblock_into(np.zeros((2, 4)), 1, 2)

    def test_setblock(self, setup_parray):
        A, arr = setup_parray
        A.setblock(np.full((2, 4), -1), 1, 1)
        assert np.all(arr[3:, 1:] == -1)
        assert arr[0, 0] == 1

        A[Block(0, 0)] = np.zeros((3, 1))
        assert np.all(arr[:3, 0] == 0)

    def test_setblock_invalid(self, setup_parray):
        A, arr = setup_parray
        ref = arr.copy()
        with pytest.raises(DimensionMismatch):
            A.setblock(np.zeros((2, 2)), 1, 1)
        assert np.array_equal(arr, ref)


class TestViews:

    def test_view_block(self, setup_parray):
        A, arr = setup_parray
        v = A.view(Block(1, 0))
        assert np.shares_memory(v, arr)
        v[...] = 0
        assert np.all(arr[3:, 0] == 0)

    def test_view_blockindexrange(self, setup_parray):
        A, arr = setup_parray
        v = A.view(Block(0, 1)[1:3, 0:2])
        assert np.array_equal(v, arr[1:3, 1:3])
        assert np.shares_memory(v, arr)

    def test_view_blockrange(self, setup_parray):
        A, arr = setup_parray
        V = A.view(BlockRange(2, range(1, 2)))
        assert isinstance(V, pba.PseudoBlockArray)
        assert V.shape == (5, 4)
        assert V.bshape == ((3, 2), (4,))
        assert np.shares_memory(V.buffer, arr)
        V.setblock(np.zeros((2, 4)), 1, 0)
        assert np.all(arr[3:, 1:] == 0)

    def test_view_elements(self, setup_parray):
        A, arr = setup_parray
        S = A[1:4, :]
        assert isinstance(S, pba.PseudoBlockArray)
        assert S.bshape == ((2, 1), (1, 4))
        assert np.shares_memory(S.to_ndarray(), arr)
        assert np.array_equal(S, arr[1:4])

        row = A[2]
        assert row.bshape == ((1, 4),)
        assert np.array_equal(row, arr[2])

    def test_1d_view(self):
        A = pba.PseudoBlockArray(np.ones(6), [1, 2, 3])
        A.view(Block(1))[...] = [3.0, 4.0]
        assert np.array_equal(A[Block(1)], [3.0, 4.0])
        assert np.array_equal(A.buffer[1:3], [3.0, 4.0])


def test_repartition(setup_parray):
    A, arr = setup_parray
    B = A.repartition([1, 4], [5])
    assert B.buffer is arr
    assert B.bshape == ((1, 4), (5,))
    with pytest.raises(DimensionMismatch):
        A.repartition([1, 1], [5])


def test_map_blocks(setup_parray):
    A, arr = setup_parray
    B = A.map_blocks(lambda block: -block)
    assert B.axes == A.axes
    assert np.array_equal(B.buffer, -arr)


@pytest.fixture(params=[
    ([5], [1, 4]),
    ([2, 4], [2, 4]),
])
def setup_lengths(request):
    return request.param

def test_zeros(setup_lengths):
    lengths = setup_lengths
    A = pba.zeros(*lengths)
    assert A.bshape == tuple(tuple(axis_lengths) for axis_lengths in lengths)
    assert np.all(A.buffer == 0)

def test_ones(setup_lengths):
    lengths = setup_lengths
    A = pba.ones(*lengths, dtype=int)
    assert A.dtype == np.dtype(int)
    assert np.all(A.buffer == 1)
