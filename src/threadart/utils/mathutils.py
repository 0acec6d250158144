"""
Small numeric helpers shared by every stage of the thread pipeline.

All functions are pure and operate on plain floats or (x, y) pairs.
"""

import math


def distance(p1, p2):
    """Euclidean distance between two (x, y) points."""
    return math.hypot(p2[0] - p1[0], p2[1] - p1[1])


def lerp(a, b, t):
    """Linear interpolation between scalars a and b."""
    return a + (b - a) * t


def lerp_point(p1, p2, t):
    """Linear interpolation between two (x, y) points."""
    return (lerp(p1[0], p2[0], t), lerp(p1[1], p2[1], t))


def deg_to_rad(degrees):
    return degrees * math.pi / 180.0


def rad_to_deg(radians):
    return radians * 180.0 / math.pi


def clamp(value, low, high):
    """Clamp value into [low, high]."""
    return max(low, min(value, high))


def circular_index_distance(i, j, count):
    """
    Shortest distance between two indices on a ring of `count` slots.
    
    Used for neighbor avoidance: peg 0 and peg count-1 are adjacent.
    """
    diff = abs(i - j)
    return min(diff, count - diff)


def normalized_key(i, j):
    """Canonical key of an unordered peg pair."""
    return (i, j) if i <= j else (j, i)


def safe_divide(numerator, denominator):
    """
    Divide, returning 0.0 instead of NaN or infinity.
    
    Zero denominators and non-finite results both resolve to 0.0.
    """
    if denominator == 0:
        return 0.0
    result = numerator / denominator
    if not math.isfinite(result):
        return 0.0
    return float(result)


def is_finite_point(point):
    """Check that both coordinates of a point are finite numbers."""
    try:
        return math.isfinite(point[0]) and math.isfinite(point[1])
    except (TypeError, IndexError):
        return False
