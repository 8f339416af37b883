"""argparse ``type=`` callables that enforce numeric bounds.

A bad value (``--alpha 2``, ``--cohort-size 0``) becomes a usage error
naming the option's constraint instead of a failure deep in the analysis.
"""

from __future__ import annotations

import argparse
from typing import Callable


def _checked(convert: Callable[[str], float], ok: Callable[[float], bool], expected: str):
    def parse(value: str):
        try:
            number = convert(value)
        except ValueError:
            raise argparse.ArgumentTypeError(f"{value!r} is not {expected}") from None
        if not ok(number):
            raise argparse.ArgumentTypeError(f"{value} is not {expected}")
        return number

    parse.__name__ = expected.replace(' ', '_')
    return parse


_positive_int = _checked(int, lambda v: v > 0, "a positive integer")
# joblib convention: -1 means all CPUs
_nonzero_int = _checked(int, lambda v: v != 0, "a non-zero integer (-1 for all CPUs)")
_probability = _checked(float, lambda v: 0 < v < 1, "a probability in (0, 1)")
_non_negative_float = _checked(float, lambda v: v >= 0, "a non-negative number")
