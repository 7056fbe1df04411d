"""
Contains functions for benchmarking `BlockArray` functions

Run this using `cProfile`, `line_profiler`, etc. as an entry point to
benchmarking
"""

import numpy as np

from blockedarray import blockarray as ba
from blockedarray.pseudoblockarray import PseudoBlockArray


def setup_subarrays():
    sizes = (500, 500, 100, 9000)
    subarrays = [np.ones(size) for size in sizes]
    _subarrays = np.empty(len(subarrays), dtype=object)
    _subarrays[:] = subarrays
    return _subarrays


def benchmark_array_creation(subarrays):
    return ba.mortar(subarrays)


def benchmark_mixed_add(a, b):
    return a + b


if __name__ == '__main__':
    subarrays = setup_subarrays()

    for n in range(2000):
        benchmark_array_creation(subarrays)

    a = ba.mortar(subarrays)
    b = PseudoBlockArray(np.ones(len(a)), [1000, 9100])
    for n in range(200):
        benchmark_mixed_add(a, b)
