"""Tests for greedy path synthesis."""

import numpy as np
import pytest


def _keys(path):
    return [c.key for c in path.connections]


class TestSynthesizePath:
    """Tests for the synthesize_path function."""

    def test_uniform_map_picks_lowest_id(self, uniform_edge_map, circle_pegs):
        """Test that ties go to the lowest eligible id."""
        from threadart.synthesis.path_synth import synthesize_path

        result = synthesize_path(circle_pegs(10), uniform_edge_map(), max_lines=3, neighbor_avoidance=0)

        pairs = [(c.from_id, c.to_id) for c in result.path.connections]
        assert pairs[0] == (0, 1)
        assert pairs == [(0, 1), (1, 2), (2, 3)]

    def test_neighbor_avoidance_skips_ring_neighbours(self, uniform_edge_map, circle_pegs):
        from threadart.synthesis.path_synth import synthesize_path

        result = synthesize_path(circle_pegs(10), uniform_edge_map(), max_lines=1, neighbor_avoidance=2)

        assert result.path.connections[0].to_id == 3

    @pytest.mark.parametrize("count,avoidance,max_lines", [
        (6, 0, 50),
        (12, 1, 100),
        (24, 3, 200),
        (40, 10, 80),
    ])
    def test_keys_unique_and_avoidance_respected(self, ring_image, small_config, count, avoidance, max_lines):
        from threadart.layout.pegs import generate_pegs
        from threadart.preprocess.edge_map import build_edge_map
        from threadart.synthesis.path_synth import synthesize_path
        from threadart.utils.mathutils import circular_index_distance

        edge_map = build_edge_map(ring_image, small_config)
        pegs = generate_pegs(count, (200, 200))

        result = synthesize_path(pegs, edge_map, max_lines, avoidance, min_score=0.0)
        keys = _keys(result.path)

        assert len(keys) == len(set(keys))
        assert len(result.path) <= max_lines
        for c in result.path.connections:
            assert circular_index_distance(c.from_id, c.to_id, count) > avoidance

    def test_path_is_walk_from_peg_zero(self, ring_image, small_config):
        from threadart.layout.pegs import generate_pegs
        from threadart.preprocess.edge_map import build_edge_map
        from threadart.synthesis.path_synth import synthesize_path

        edge_map = build_edge_map(ring_image, small_config)
        result = synthesize_path(generate_pegs(36, (200, 200)), edge_map, 40, 2, min_score=0.0)

        assert len(result.path) > 0
        assert result.path.connections[0].from_id == 0
        assert result.path.is_walk()
        assert all(c.length >= 5.0 for c in result.path.connections)

    def test_deterministic_with_edge_map(self, ring_image, small_config):
        from threadart.layout.pegs import generate_pegs
        from threadart.models import path_to_pairs
        from threadart.preprocess.edge_map import build_edge_map
        from threadart.synthesis.path_synth import synthesize_path

        edge_map = build_edge_map(ring_image, small_config)
        pegs = generate_pegs(36, (200, 200))

        first = synthesize_path(pegs, edge_map, 50, 2, min_score=0.0)
        second = synthesize_path(pegs, edge_map, 50, 2, min_score=0.0)

        assert path_to_pairs(first.path) == path_to_pairs(second.path)
        assert first.scorer.value == "edge_map"
        assert not first.reduced_fidelity

    def test_max_lines_zero(self, uniform_edge_map, circle_pegs):
        from threadart.models import StopReason
        from threadart.synthesis.path_synth import synthesize_path

        result = synthesize_path(circle_pegs(10), uniform_edge_map(), max_lines=0, neighbor_avoidance=1)

        assert len(result.path) == 0
        assert result.stop_reason == StopReason.MAX_LINES
        assert not result.degenerate

    def test_blank_map_is_degenerate(self, uniform_edge_map, circle_pegs):
        """Test that nothing above the cutoff yields an empty, flagged path."""
        from threadart.models import StopReason
        from threadart.synthesis.path_synth import synthesize_path

        result = synthesize_path(circle_pegs(10), uniform_edge_map(value=0), max_lines=20, neighbor_avoidance=1)

        assert len(result.path) == 0
        assert result.stop_reason == StopReason.BELOW_CUTOFF
        assert result.degenerate

    def test_candidates_exhausted(self, uniform_edge_map, circle_pegs):
        from threadart.models import StopReason
        from threadart.synthesis.path_synth import synthesize_path

        result = synthesize_path(
            circle_pegs(5), uniform_edge_map(), max_lines=100, neighbor_avoidance=0, reuse_penalty=1.0,
        )

        # A complete graph on 5 pegs has 10 edges
        assert len(result.path) <= 10
        assert result.stop_reason == StopReason.NO_CANDIDATES

    def test_reuse_penalty_discourages_hubs(self, uniform_edge_map, circle_pegs):
        from threadart.models import StopReason
        from threadart.synthesis.path_synth import synthesize_path

        result = synthesize_path(
            circle_pegs(4), uniform_edge_map(), max_lines=10, neighbor_avoidance=0, reuse_penalty=0.0,
        )

        pairs = [(c.from_id, c.to_id) for c in result.path.connections]
        assert pairs == [(0, 1), (1, 2), (2, 3)]
        assert result.stop_reason == StopReason.BELOW_CUTOFF
        assert not result.degenerate

    def test_fallback_scorer_keeps_invariants(self, circle_pegs):
        """Test that runs without an edge map still honour uniqueness and avoidance."""
        from threadart.synthesis.path_synth import synthesize_path
        from threadart.utils.mathutils import circular_index_distance

        pegs = circle_pegs(20)
        for _ in range(3):
            result = synthesize_path(pegs, None, max_lines=60, neighbor_avoidance=2, min_score=0.0)
            keys = _keys(result.path)

            assert result.reduced_fidelity
            assert len(keys) == len(set(keys))
            for c in result.path.connections:
                assert circular_index_distance(c.from_id, c.to_id, 20) > 2

    def test_cancellation_discards_run(self, uniform_edge_map, circle_pegs):
        from threadart.synthesis.cancellation import CancelToken, GenerationCancelled
        from threadart.synthesis.path_synth import synthesize_path

        token = CancelToken()
        token.cancel()

        with pytest.raises(GenerationCancelled):
            synthesize_path(circle_pegs(10), uniform_edge_map(), 10, 1, cancel_token=token)

    def test_rejects_negative_avoidance(self, uniform_edge_map, circle_pegs):
        from threadart.models import InvalidInputError
        from threadart.synthesis.path_synth import synthesize_path

        with pytest.raises(InvalidInputError):
            synthesize_path(circle_pegs(10), uniform_edge_map(), 10, -1)

    def test_rejects_non_contiguous_ids(self, uniform_edge_map):
        from threadart.models import InvalidInputError, Peg
        from threadart.synthesis.path_synth import synthesize_path

        pegs = [Peg(id=0, x=10, y=10), Peg(id=2, x=100, y=100)]
        with pytest.raises(InvalidInputError):
            synthesize_path(pegs, uniform_edge_map(), 10, 0)

    @pytest.mark.parametrize("bad", [float("nan"), float("inf"), float("-inf")])
    def test_rejects_non_finite_peg(self, bad):
        """Test that a non-finite peg coordinate fails before any scoring."""
        from threadart.models import EdgeMap, InvalidInputError, Peg
        from threadart.synthesis.path_synth import synthesize_path

        pegs = [
            Peg(id=0, x=10, y=10),
            Peg(id=1, x=bad, y=50),
            Peg(id=2, x=100, y=100),
            Peg(id=3, x=150, y=20),
        ]
        edge_map = EdgeMap.from_array(np.zeros((200, 200)))

        with pytest.raises(InvalidInputError, match="non-finite"):
            synthesize_path(pegs, edge_map, 5, 0, min_score=0.0)


class TestSynthesisSession:
    """Tests for the session value object."""

    def test_accept_updates_state(self):
        from threadart.synthesis.path_synth import SynthesisSession

        session = SynthesisSession()
        session.accept(4)

        assert session.current == 4
        assert (0, 4) in session.used_keys
        assert session.usage[0] == 1
        assert session.usage[4] == 1
        assert session.is_used(0)

    def test_eligible_candidates(self):
        from threadart.synthesis.path_synth import SynthesisSession, eligible_candidates

        session = SynthesisSession(current=0)
        session.used_keys.add((0, 5))

        assert eligible_candidates(session, 10, 2) == [3, 4, 6, 7]
