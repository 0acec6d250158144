"""
Line scoring against an edge map.

A candidate thread is scored by the mean edge intensity sampled along it.
Without an edge map a random score keeps the synthesizer runnable for
isolated testing; that fallback is non-deterministic and says nothing about
image fidelity.
"""

import math

import numpy as np

from threadart.utils.mathutils import distance, safe_divide


MIN_SEGMENT_LENGTH = 5.0
MIN_SAMPLES = 10
FALLBACK_SCORE_RANGE = (0.0, 255.0)


def sample_count(length):
    """Number of samples taken along a segment of the given length."""
    return max(MIN_SAMPLES, int(math.floor(length)))


def line_score(start, end, edge_map, rng=None):
    """
    Score a straight segment between two (x, y) points.

    Segments shorter than MIN_SEGMENT_LENGTH score 0. Samples are taken at
    evenly spaced parametric points including both ends; samples outside the
    map are skipped. Returns the mean of the valid samples, or 0 if none.

    When edge_map is None a uniform random value from FALLBACK_SCORE_RANGE
    is returned instead.
    """
    length = distance(start, end)
    if length < MIN_SEGMENT_LENGTH:
        return 0.0

    if edge_map is None:
        rng = rng if rng is not None else np.random.default_rng()
        return float(rng.uniform(*FALLBACK_SCORE_RANGE))

    t = np.linspace(0.0, 1.0, sample_count(length))
    xs = np.floor(start[0] + (end[0] - start[0]) * t).astype(np.int64)
    ys = np.floor(start[1] + (end[1] - start[1]) * t).astype(np.int64)

    valid = (xs >= 0) & (xs < edge_map.width) & (ys >= 0) & (ys < edge_map.height)
    count = int(np.count_nonzero(valid))
    if count == 0:
        return 0.0

    total = float(edge_map.data[ys[valid], xs[valid]].sum(dtype=np.float64))
    return safe_divide(total, count)


def connection_score(connection, edge_map, rng=None):
    """Score a Connection using its stored endpoint coordinates."""
    return line_score(connection.start, connection.end, edge_map, rng)
