"""
Greedy thread path synthesis.

Starting from peg 0, each step scores every eligible peg from the current
one and walks to the best. Eligibility excludes the current peg, ring
neighbours within the avoidance distance and pairs already threaded. Pegs
that already carry a thread are penalized to avoid hubs.

With a fixed edge map, peg layout and parameters the result is fully
deterministic. Without an edge map the random fallback scorer is used.
"""

import math
from collections import Counter
from dataclasses import dataclass, field
from typing import Set

import numpy as np

from threadart.models import Connection, InvalidInputError, Path, ScorerKind, StopReason
from threadart.synthesis.line_score import MIN_SEGMENT_LENGTH, line_score
from threadart.tracer import get_tracer, trace
from threadart.utils.mathutils import circular_index_distance, distance, is_finite_point, normalized_key


DEFAULT_MIN_SCORE = 10.0
DEFAULT_REUSE_PENALTY = 0.7


@dataclass
class SynthesisSession:
    """Transient state of one synthesis run."""
    current: int = 0
    used_keys: Set = field(default_factory=set)
    usage: Counter = field(default_factory=Counter)

    def is_used(self, target):
        return normalized_key(self.current, target) in self.used_keys

    def accept(self, target):
        """Record a thread from the current peg to target and move there."""
        self.used_keys.add(normalized_key(self.current, target))
        self.usage[self.current] += 1
        self.usage[target] += 1
        self.current = target


@dataclass
class SynthesisResult:
    path: Path
    stop_reason: StopReason
    scorer: ScorerKind
    degenerate: bool = False

    @property
    def reduced_fidelity(self):
        return self.scorer == ScorerKind.RANDOM_FALLBACK


def _validate_inputs(pegs, max_lines, neighbor_avoidance, min_score, reuse_penalty):
    for i, peg in enumerate(pegs):
        if peg.id != i:
            raise InvalidInputError(f"Peg ids must be contiguous from 0, found id {peg.id} at position {i}")
        if not is_finite_point(peg.position):
            raise InvalidInputError(f"Peg {peg.id} has non-finite coordinates")

    if isinstance(max_lines, bool) or not isinstance(max_lines, (int, np.integer)) or max_lines < 0:
        raise InvalidInputError(f"max_lines must be a non-negative integer, got {max_lines!r}")

    if isinstance(neighbor_avoidance, bool) or not isinstance(neighbor_avoidance, (int, np.integer)) \
            or neighbor_avoidance < 0:
        raise InvalidInputError(f"neighbor_avoidance must be a non-negative integer, got {neighbor_avoidance!r}")

    if not math.isfinite(min_score):
        raise InvalidInputError("min_score must be finite")

    if not math.isfinite(reuse_penalty) or reuse_penalty < 0:
        raise InvalidInputError(f"reuse_penalty must be a non-negative number, got {reuse_penalty}")


def eligible_candidates(session, peg_count, neighbor_avoidance):
    """Peg ids that may be threaded from the current peg, ascending."""
    current = session.current
    candidates = []
    for j in range(peg_count):
        if j == current:
            continue
        if circular_index_distance(j, current, peg_count) <= neighbor_avoidance:
            continue
        if session.is_used(j):
            continue
        candidates.append(j)
    return candidates


@trace(label="synthesize_path")
def synthesize_path(pegs, edge_map, max_lines, neighbor_avoidance,
                    min_score=DEFAULT_MIN_SCORE, reuse_penalty=DEFAULT_REUSE_PENALTY,
                    degenerate_min_lines=3, seed=None, cancel_token=None):
    """
    Grow a thread path one connection at a time.

    Args:
        pegs: list of Peg ordered by id (ids 0..N-1)
        edge_map: EdgeMap, or None for the random fallback scorer
        max_lines: maximum number of connections
        neighbor_avoidance: ring distance at or below which pegs are skipped
        min_score: best scores below this end the run
        reuse_penalty: multiplier for candidates that already carry a thread
        degenerate_min_lines: early stops shorter than this are flagged
        seed: seed for the fallback scorer only
        cancel_token: optional CancelToken, checked once per step

    Returns:
        SynthesisResult

    Raises GenerationCancelled if the token is set mid-run.
    """
    tracer = get_tracer()

    _validate_inputs(pegs, max_lines, neighbor_avoidance, min_score, reuse_penalty)

    scorer = ScorerKind.EDGE_MAP
    rng = None
    if edge_map is None:
        scorer = ScorerKind.RANDOM_FALLBACK
        rng = np.random.default_rng(seed)
        tracer.event("No edge map supplied, using random fallback scorer (reduced fidelity)", level="WARN")

    peg_count = len(pegs)
    session = SynthesisSession()
    connections = []
    stop_reason = StopReason.MAX_LINES

    # Edge map scores only depend on the ordered pair, so they are cached
    score_cache = {}

    for _ in range(max_lines):
        if cancel_token is not None:
            cancel_token.raise_if_cancelled("synthesis")

        if peg_count == 0:
            stop_reason = StopReason.NO_CANDIDATES
            break

        candidates = eligible_candidates(session, peg_count, neighbor_avoidance)
        if not candidates:
            stop_reason = StopReason.NO_CANDIDATES
            break

        origin = pegs[session.current]
        best_id = None
        best_score = -math.inf

        for j in candidates:
            if distance(origin.position, pegs[j].position) < MIN_SEGMENT_LENGTH:
                continue

            pair = (session.current, j)
            if rng is None and pair in score_cache:
                score = score_cache[pair]
            else:
                score = line_score(origin.position, pegs[j].position, edge_map, rng)
                if rng is None:
                    score_cache[pair] = score

            if session.usage[j] > 0:
                score *= reuse_penalty

            # Strict comparison keeps the lowest id on ties
            if score > best_score:
                best_score = score
                best_id = j

        if best_id is None or best_score < min_score:
            stop_reason = StopReason.BELOW_CUTOFF
            break

        connections.append(Connection.between(origin, pegs[best_id]))
        session.accept(best_id)

    path = Path(connections=connections)
    degenerate = stop_reason != StopReason.MAX_LINES and len(path) < degenerate_min_lines

    tracer.event(f"Synthesized {len(path)}/{max_lines} lines, stop={stop_reason.value}")
    if degenerate:
        tracer.event("Synthesis produced a degenerate path", level="WARN")

    return SynthesisResult(path=path, stop_reason=stop_reason, scorer=scorer, degenerate=degenerate)
