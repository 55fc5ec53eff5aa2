# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Numeric helpers shared by progress and analytics calculations."""

import math
from typing import Iterable


def round_half_up(value: float, digits: int = 0) -> float:
    """Round halves away from zero for non-negative values.

    The built-in round() rounds halves to even, which would report 2.5
    as 2. Metrics shown to users follow the usual half-up convention.

    Args:
        value: Value to round.
        digits: Decimal places to keep.

    Returns:
        Rounded value.
    """
    factor = 10**digits
    return math.floor(value * factor + 0.5) / factor


def round_int(value: float) -> int:
    return int(round_half_up(value))


def mean(values: Iterable[float]) -> float:
    """Arithmetic mean, 0.0 for an empty input."""
    items = list(values)
    if not items:
        return 0.0
    return sum(items) / len(items)
