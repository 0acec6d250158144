"""Tests for line scoring."""

import numpy as np
import pytest


class TestLineScore:
    """Tests for the line_score function."""

    def test_short_segment_scores_zero(self, uniform_edge_map):
        from threadart.synthesis.line_score import line_score

        assert line_score((10, 10), (13, 13), uniform_edge_map()) == 0.0

    def test_uniform_map_scores_its_value(self, uniform_edge_map):
        from threadart.synthesis.line_score import line_score

        score = line_score((10, 10), (200, 150), uniform_edge_map(value=100))

        assert score == pytest.approx(100.0)

    def test_out_of_bounds_samples_skipped(self, uniform_edge_map):
        """Test that samples outside the map do not drag the mean down."""
        from threadart.synthesis.line_score import line_score

        edge_map = uniform_edge_map(width=20, height=20, value=100)
        score = line_score((10, 10), (40, 10), edge_map)

        assert score == pytest.approx(100.0)

    def test_fully_outside_scores_zero(self, uniform_edge_map):
        from threadart.synthesis.line_score import line_score

        edge_map = uniform_edge_map(width=20, height=20, value=100)

        assert line_score((30, 30), (60, 60), edge_map) == 0.0

    def test_follows_bright_row(self):
        from threadart.models import EdgeMap
        from threadart.synthesis.line_score import line_score

        data = np.zeros((20, 20), dtype=np.uint8)
        data[10, :] = 255
        edge_map = EdgeMap.from_array(data)

        assert line_score((0, 10), (19, 10), edge_map) == pytest.approx(255.0)
        assert line_score((0, 3), (19, 3), edge_map) == 0.0

    def test_sample_count(self):
        from threadart.synthesis.line_score import sample_count

        assert sample_count(3.5) == 10
        assert sample_count(42.7) == 42

    def test_fallback_scorer_range_and_seed(self):
        """Test that the fallback scorer is bounded and reproducible with a seeded rng."""
        from threadart.synthesis.line_score import line_score

        first = [line_score((0, 0), (50, 50), None, np.random.default_rng(3)) for _ in range(5)]
        second = [line_score((0, 0), (50, 50), None, np.random.default_rng(3)) for _ in range(5)]

        assert first == second
        assert all(0.0 <= s <= 255.0 for s in first)

    def test_connection_score_uses_endpoints(self, uniform_edge_map):
        from threadart.models import Connection
        from threadart.synthesis.line_score import connection_score

        connection = Connection.from_points(0, 1, (10, 10), (100, 10))

        assert connection_score(connection, uniform_edge_map(value=77)) == pytest.approx(77.0)
