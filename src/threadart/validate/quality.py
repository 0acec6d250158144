"""
Pattern quality evaluation.

The quality score is the length-weighted mean line score of a path.
"""

from threadart.synthesis.line_score import connection_score
from threadart.tracer import get_tracer, trace
from threadart.utils.mathutils import safe_divide


@trace(label="evaluate_quality")
def evaluate_quality(path, edge_map):
    """
    Length-weighted mean edge score of all connections.

    Returns 0.0 for an empty path, a missing edge map or zero total length.
    """
    tracer = get_tracer()

    if edge_map is None or len(path) == 0:
        return 0.0

    weighted = 0.0
    total_length = 0.0
    for connection in path.connections:
        weighted += connection_score(connection, edge_map) * connection.length
        total_length += connection.length

    quality = max(0.0, safe_divide(weighted, total_length))
    tracer.event(f"Quality score: {quality:.2f}")

    return quality


def connection_report(path, edge_map):
    """Per-connection scores for display, in path order."""
    if edge_map is None:
        return []

    report = []
    for index, connection in enumerate(path.connections):
        report.append({
            "index": index,
            "from_id": connection.from_id,
            "to_id": connection.to_id,
            "length": round(connection.length, 3),
            "score": round(connection_score(connection, edge_map), 3),
        })
    return report
