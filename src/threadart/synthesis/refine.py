"""
Local refinement of a synthesized path.

Each pass nudges the end point of every connection within a small window
and keeps the move only when the line score strictly improves. Start points
never move, so a refined connection keeps its peg ids while its end
coordinates may drift off the peg.
"""

from threadart.models import Connection, InvalidInputError, Path
from threadart.synthesis.line_score import line_score
from threadart.tracer import get_tracer, trace
from threadart.utils.mathutils import clamp


DEFAULT_WINDOW = 2


def _refine_connection(connection, edge_map, window):
    """Return (connection, improved) after one hill-climb step."""
    start = connection.start
    ex, ey = connection.end
    best_score = line_score(start, connection.end, edge_map)
    best_end = None

    max_x = edge_map.width - 1
    max_y = edge_map.height - 1

    for dx in range(-window, window + 1):
        for dy in range(-window, window + 1):
            if dx == 0 and dy == 0:
                continue
            candidate = (clamp(ex + dx, 0, max_x), clamp(ey + dy, 0, max_y))
            score = line_score(start, candidate, edge_map)
            if score > best_score:
                best_score = score
                best_end = candidate

    if best_end is None:
        return connection, False

    refined = Connection.from_points(connection.from_id, connection.to_id, start, best_end)
    return refined, True


@trace(label="refine_path")
def refine_path(path, edge_map, iterations, window=DEFAULT_WINDOW, cancel_token=None):
    """
    Hill-climb connection end points against the edge map.

    Args:
        path: Path to refine (left untouched)
        edge_map: EdgeMap; without one the path is returned unchanged
        iterations: number of full passes
        window: per-axis perturbation range
        cancel_token: optional CancelToken, checked once per pass

    Returns:
        (refined Path, number of connections moved at least once)
    """
    tracer = get_tracer()

    if iterations < 0:
        raise InvalidInputError(f"iterations must be non-negative, got {iterations}")
    if window < 0:
        raise InvalidInputError(f"window must be non-negative, got {window}")

    connections = list(path.connections)

    if edge_map is None:
        tracer.event("No edge map supplied, skipping refinement", level="WARN")
        return Path(connections=connections), 0

    moved = set()
    for iteration in range(iterations):
        if cancel_token is not None:
            cancel_token.raise_if_cancelled("refinement")

        improved = 0
        for idx, connection in enumerate(connections):
            refined, changed = _refine_connection(connection, edge_map, window)
            if changed:
                connections[idx] = refined
                moved.add(idx)
                improved += 1

        tracer.event(f"Refine pass {iteration + 1}/{iterations}: {improved} connections improved")

    return Path(connections=connections), len(moved)
