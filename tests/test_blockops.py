"""
Test the operations in `blockedarray.blockops`
"""

import operator

import pytest
import numpy as np

from blockedarray import blockarray as ba
from blockedarray import blockops as bo
from blockedarray.config import config
from blockedarray.errors import DimensionMismatch, UninitializedBlockAccess
from blockedarray.pseudoblockarray import PseudoBlockArray

# pylint: disable=missing-function-docstring

@pytest.fixture()
def setup_barray_a():
    source = np.arange(16, dtype=float).reshape(4, 4) + 1
    return ba.from_array(source, [2, 2], [2, 2]), source

@pytest.fixture()
def setup_parray_b():
    source = np.linspace(1, 2, 16).reshape(4, 4)
    return PseudoBlockArray(source.copy(), [1, 3], [4]), source


class TestMath:

    @pytest.fixture(
        params=[
            operator.add, operator.sub,
            operator.mul, operator.truediv
        ]
    )
    def binary_op(self, request):
        """
        Return a binary operation
        """
        return request.param

    def test_elementwise_binary_op(self, binary_op, setup_barray_a, setup_parray_b):
        """
        Test an element-wise binary operation between differently partitioned arrays

        The result should be partitioned on the common refinement and equal
        the operation applied to the monolithic arrays
        """
        A, a = setup_barray_a
        B, b = setup_parray_b

        C = binary_op(A, B)
        assert isinstance(C, ba.BlockArray)
        assert C.bshape == ((1, 1, 2), (2, 2))
        assert np.allclose(C.to_ndarray(), binary_op(a, b))

        C = binary_op(B, A)
        assert C.bshape == ((1, 1, 2), (2, 2))
        assert np.allclose(C.to_ndarray(), binary_op(b, a))

    def test_same_partition(self, binary_op, setup_barray_a):
        A, a = setup_barray_a
        C = binary_op(A, A)
        assert C.bshape == A.bshape
        assert np.allclose(C.to_ndarray(), binary_op(a, a))

    def test_pseudo_fast_path(self, binary_op, setup_parray_b):
        B, b = setup_parray_b
        C = binary_op(B, B)
        assert isinstance(C, PseudoBlockArray)
        assert C.axes == B.axes
        assert np.allclose(C.buffer, binary_op(b, b))

    def test_scalar(self, binary_op, setup_barray_a):
        A, a = setup_barray_a
        for alpha in [2.0, 3, np.float64(5.0)]:
            C = binary_op(A, alpha)
            assert C.bshape == A.bshape
            assert np.allclose(C.to_ndarray(), binary_op(a, alpha))

            C = binary_op(alpha, A)
            assert C.bshape == A.bshape
            assert np.allclose(C.to_ndarray(), binary_op(alpha, a))

    def test_ndarray(self, binary_op, setup_barray_a):
        A, a = setup_barray_a
        b = np.full((4, 4), 2.0)
        C = binary_op(A, b)
        assert C.bshape == A.bshape
        assert np.allclose(C.to_ndarray(), binary_op(a, b))

    def test_unary(self, setup_barray_a):
        A, a = setup_barray_a
        assert np.array_equal((-A).to_ndarray(), -a)
        assert np.array_equal((+A).to_ndarray(), a)
        assert np.array_equal(bo.scalar_mul(2.0, A).to_ndarray(), 2*a)

    def test_shape_mismatch(self, setup_barray_a):
        A, _ = setup_barray_a
        B = ba.zeros([2, 2], [3])
        with pytest.raises(DimensionMismatch):
            A + B
        with pytest.raises(DimensionMismatch):
            A + np.ones((4, 3))

    def test_uninitialized(self, setup_barray_a):
        A, _ = setup_barray_a
        B = ba.undef_blocks([2, 2], [2, 2])
        with pytest.raises(UninitializedBlockAccess):
            A + B
        with pytest.raises(UninitializedBlockAccess):
            2*B

    def test_inputs_unchanged(self, setup_barray_a, setup_parray_b):
        A, a = setup_barray_a
        B, b = setup_parray_b
        A + B
        assert np.array_equal(A.to_ndarray(), a)
        assert np.array_equal(B.buffer, b)


def test_repartition(setup_barray_a, setup_parray_b):
    A, a = setup_barray_a
    B, _ = setup_parray_b
    C = bo.repartition(A, [3, 1], [1, 1, 2])
    assert C.bshape == ((3, 1), (1, 1, 2))
    assert np.array_equal(C.to_ndarray(), a)

    D = bo.repartition(B, [4], [2, 2])
    assert D.buffer is B.buffer


class TestAsBlocked:

    def test_default(self, setup_barray_a):
        _, a = setup_barray_a
        A = bo.asblocked(a, [2, 2], [1, 3])
        assert isinstance(A, ba.BlockArray)
        assert not np.shares_memory(A.getblock(0, 0), a)

    def test_pseudo(self, setup_barray_a):
        _, a = setup_barray_a
        A = bo.asblocked(a, [2, 2], [1, 3], storage='pseudo')
        assert isinstance(A, PseudoBlockArray)
        assert A.buffer is a

    def test_config(self, setup_barray_a):
        _, a = setup_barray_a
        with config.set({"array.storage": "pseudo"}):
            A = bo.asblocked(a, [4], [4])
        assert isinstance(A, PseudoBlockArray)
        assert isinstance(bo.asblocked(a, [4], [4]), ba.BlockArray)

    def test_invalid(self, setup_barray_a):
        _, a = setup_barray_a
        with pytest.raises(ValueError):
            bo.asblocked(a, [4], [4], storage='dense')
