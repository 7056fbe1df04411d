"""
Test `blockedarray.reconcile`
"""

import pytest

from blockedarray.axis import BlockedRange
from blockedarray.blockindex import Block, BlockIndexRange
from blockedarray.config import config
from blockedarray.errors import IncompatiblePartitions
from blockedarray.reconcile import (
    PartitionReconciler, join_pieces, reconcile_axes, validate_refinement
)

# pylint: disable=missing-function-docstring

def as_pairs(reconciler):
    return [(idx.block.n[0], idx.indices[0]) for idx in reconciler]


class TestPartitionReconciler:

    def test_iter(self):
        pairs = as_pairs(PartitionReconciler([1, 3, 6], [1, 3, 4, 6]))
        assert pairs == [
            (0, range(0, 1)), (1, range(0, 2)), (2, range(0, 1)), (2, range(1, 3))
        ]

    def test_iter_partitions(self):
        target = BlockedRange.from_lengths([1, 2, 3])
        refined = BlockedRange.from_lengths([1, 2, 1, 2])
        reconciler = PartitionReconciler(target, refined)
        assert reconciler.target_stops == (1, 3, 6)
        assert reconciler.refined_stops == (1, 3, 4, 6)
        assert len(reconciler) == 4
        assert as_pairs(reconciler) == as_pairs(PartitionReconciler([1, 3, 6], [1, 3, 4, 6]))

    def test_covers_axis(self):
        target = BlockedRange.from_lengths([2, 0, 3, 4])
        refined = BlockedRange.from_lengths([1, 1, 0, 1, 2, 2, 2])
        start = 0
        for idx in PartitionReconciler(target, refined):
            block = idx.block.n[0]
            rng = idx.indices[0]
            assert rng.stop <= target.blocklength(block)
            assert target.blockstart(block) + rng.start == start
            start = target.blockstart(block) + rng.stop
        assert start == len(target)

    def test_identity(self):
        assert as_pairs(PartitionReconciler([2, 4], [2, 4])) == [
            (0, range(0, 2)), (1, range(0, 2))
        ]

    def test_empty(self):
        assert as_pairs(PartitionReconciler([], [])) == []

    def test_not_a_refinement(self):
        with pytest.raises(IncompatiblePartitions):
            PartitionReconciler([1, 3, 6], [2, 6])

    def test_different_lengths(self):
        with pytest.raises(IncompatiblePartitions):
            PartitionReconciler([1, 3, 6], [1, 3, 5])

    def test_unchecked(self):
        # Construction doesn't validate when checks are disabled
        reconciler = PartitionReconciler([1, 3, 6], [2, 6], check=False)
        assert len(reconciler) == 2

        with config.set({"reconcile.check_boundaries": False}):
            reconciler = PartitionReconciler([1, 3, 6], [2, 6])
        assert reconciler.refined_stops == (2, 6)

    def test_unchecked_past_target(self):
        reconciler = PartitionReconciler([1, 3], [1, 3, 6], check=False)
        with pytest.raises(IncompatiblePartitions):
            list(reconciler)

    def test_repr(self):
        assert repr(PartitionReconciler([1, 3], [1, 2, 3])) == (
            "PartitionReconciler([1, 3], [1, 2, 3])"
        )


def test_validate_refinement():
    validate_refinement((2, 4), (1, 2, 3, 4))
    with pytest.raises(IncompatiblePartitions):
        validate_refinement((2, 4), (1, 3, 4))
    with pytest.raises(IncompatiblePartitions):
        validate_refinement((), (0,))


def test_join_pieces():
    pieces = [
        BlockIndexRange(Block(1), (range(0, 2),)),
        BlockIndexRange(Block(0), (range(1, 3),))
    ]
    joined = join_pieces(pieces)
    assert joined.block == Block(1, 0)
    assert joined.indices == (range(0, 2), range(1, 3))


def test_reconcile_axes():
    a = BlockedRange.from_lengths([1, 2, 1, 2])
    b = BlockedRange.from_lengths([1, 2, 3])
    refined, pieces_a, pieces_b = reconcile_axes(a, b)
    assert refined.blockstops() == (1, 3, 4, 6)
    assert as_pairs(pieces_a) == [
        (0, range(0, 1)), (1, range(0, 2)), (2, range(0, 1)), (3, range(0, 2))
    ]
    assert as_pairs(pieces_b) == [
        (0, range(0, 1)), (1, range(0, 2)), (2, range(0, 1)), (2, range(1, 3))
    ]
