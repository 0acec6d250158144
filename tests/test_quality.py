"""Tests for quality evaluation."""

import numpy as np
import pytest


class TestEvaluateQuality:
    """Tests for the evaluate_quality function."""

    def test_empty_path_is_zero(self, uniform_edge_map):
        from threadart.models import Path
        from threadart.validate.quality import evaluate_quality

        assert evaluate_quality(Path(), uniform_edge_map()) == 0.0

    def test_missing_edge_map_is_zero(self):
        from threadart.models import Connection, Path
        from threadart.validate.quality import evaluate_quality

        path = Path(connections=[Connection.from_points(0, 1, (0, 0), (50, 50))])

        assert evaluate_quality(path, None) == 0.0

    def test_uniform_map(self, uniform_edge_map):
        from threadart.models import Connection, Path
        from threadart.validate.quality import evaluate_quality

        path = Path(connections=[
            Connection.from_points(0, 1, (10, 10), (200, 10)),
            Connection.from_points(1, 2, (200, 10), (150, 250)),
        ])

        assert evaluate_quality(path, uniform_edge_map(value=120)) == pytest.approx(120.0)

    def test_length_weighting(self):
        """Test that longer connections weigh more in the score."""
        from threadart.models import Connection, EdgeMap, Path
        from threadart.validate.quality import evaluate_quality

        data = np.zeros((100, 100), dtype=np.uint8)
        data[10, :] = 200
        edge_map = EdgeMap.from_array(data)

        equal = Path(connections=[
            Connection.from_points(0, 1, (0, 10), (50, 10)),
            Connection.from_points(1, 2, (0, 30), (50, 30)),
        ])
        assert evaluate_quality(equal, edge_map) == pytest.approx(100.0)

        long_bright = Path(connections=[
            Connection.from_points(0, 1, (0, 10), (90, 10)),
            Connection.from_points(1, 2, (0, 30), (30, 30)),
        ])
        assert evaluate_quality(long_bright, edge_map) == pytest.approx(150.0)

    def test_connection_report(self, uniform_edge_map):
        from threadart.models import Connection, Path
        from threadart.validate.quality import connection_report

        path = Path(connections=[Connection.from_points(4, 9, (10, 10), (40, 50))])
        report = connection_report(path, uniform_edge_map(value=60))

        assert report == [{"index": 0, "from_id": 4, "to_id": 9, "length": 50.0, "score": 60.0}]
