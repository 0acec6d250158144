"""
Peg layout generation for thread patterns.

Places N pegs along a closed shape inside the canvas. The shape tag is
resolved once to a placement function; every placement function returns
raw (x, y) positions which are then numbered 0..N-1 in order.

Optional post-passes snap pegs onto nearby edges and drop pegs that fall
outside the canvas or crowd an already accepted peg.
"""

import math
from dataclasses import dataclass, field
from typing import List

import numpy as np

from threadart.models import InvalidInputError, Peg, PegDistribution, PegShape
from threadart.tracer import get_tracer, trace
from threadart.utils.mathutils import deg_to_rad, distance, is_finite_point, lerp_point


GOLDEN_ANGLE = math.pi * (3 - math.sqrt(5))

# Dense sampling used to measure the extent of a parametric curve
CURVE_EXTENT_SAMPLES = 1024


@dataclass
class LayoutRequest:
    """Validated inputs shared by every placement function."""
    count: int
    width: float
    height: float
    margin: float
    distribution: PegDistribution
    start_angle: float = 0.0
    polygon_sides: int = 4
    star_points: int = 5
    star_inner_ratio: float = 0.4
    curve: str = "heart"
    custom_points: List = field(default_factory=list)

    @property
    def center(self):
        return (self.width / 2.0, self.height / 2.0)

    @property
    def radius(self):
        return min(self.width, self.height) / 2.0 - self.margin

    @property
    def box(self):
        """Inner drawing box (left, top, right, bottom)."""
        return (self.margin, self.margin, self.width - self.margin, self.height - self.margin)


@trace(label="generate_pegs")
def generate_pegs(count, canvas_size, shape=PegShape.CIRCLE, margin=10,
                  distribution=PegDistribution.EVEN, start_angle=0.0,
                  polygon_sides=4, star_points=5, star_inner_ratio=0.4,
                  curve="heart", custom_points=None, seed=None):
    """
    Generate an ordered peg list.

    Args:
        count: number of pegs (> 0)
        canvas_size: (width, height) of the canvas
        shape: PegShape or its string value
        margin: distance kept free along the canvas border
        distribution: PegDistribution or its string value
        start_angle: rotation in radians for circle and star layouts
        polygon_sides: vertex count for the polygon shape
        star_points: number of star tips
        star_inner_ratio: inner radius as a fraction of the outer radius
        curve: parametric curve name, see CURVES
        custom_points: [[x, y], ...] polyline for the custom shape
        seed: seed for the random-angle distribution

    Returns:
        list of Peg with ids 0..count-1
    """
    tracer = get_tracer()

    request = _build_request(
        count, canvas_size, shape, margin, distribution, start_angle,
        polygon_sides, star_points, star_inner_ratio, curve, custom_points,
    )
    shape = PegShape(shape)

    if request.distribution == PegDistribution.SPIRAL and shape != PegShape.CIRCLE:
        raise InvalidInputError("golden-angle-spiral distribution requires the circle shape")

    rng = np.random.default_rng(seed)
    place = SHAPE_PLACEMENTS[shape]
    positions = place(request, rng)

    pegs = [Peg(id=i, x=float(x), y=float(y)) for i, (x, y) in enumerate(positions)]

    tracer.event(f"Generated {len(pegs)} pegs: shape={shape.value} distribution={request.distribution.value}")

    return pegs


def _build_request(count, canvas_size, shape, margin, distribution, start_angle,
                   polygon_sides, star_points, star_inner_ratio, curve, custom_points):
    """Validate raw layout inputs and bundle them."""
    if isinstance(count, bool) or not isinstance(count, (int, np.integer)) or count <= 0:
        raise InvalidInputError(f"Peg count must be a positive integer, got {count!r}")

    try:
        width, height = canvas_size
    except (TypeError, ValueError):
        raise InvalidInputError(f"Canvas size must be (width, height), got {canvas_size!r}")

    if not is_finite_point((width, height)) or width <= 0 or height <= 0:
        raise InvalidInputError(f"Canvas dimensions must be positive, got {width}x{height}")

    if not math.isfinite(margin) or margin < 0:
        raise InvalidInputError(f"Margin must be a non-negative number, got {margin}")

    if min(width, height) / 2.0 - margin <= 0:
        raise InvalidInputError(f"Margin {margin} leaves no room on a {width}x{height} canvas")

    if not math.isfinite(start_angle):
        raise InvalidInputError("Start angle must be finite")

    try:
        PegShape(shape)
    except ValueError:
        raise InvalidInputError(f"Unknown peg shape: {shape!r}")

    try:
        distribution = PegDistribution(distribution)
    except ValueError:
        raise InvalidInputError(f"Unknown peg distribution: {distribution!r}")

    return LayoutRequest(
        count=int(count),
        width=float(width),
        height=float(height),
        margin=float(margin),
        distribution=distribution,
        start_angle=float(start_angle),
        polygon_sides=polygon_sides,
        star_points=star_points,
        star_inner_ratio=star_inner_ratio,
        curve=curve,
        custom_points=list(custom_points or []),
    )


def _parameter_fractions(count, distribution, rng):
    """
    Fractions in [0, 1) at which a closed shape is sampled.

    Even spacing gives i/N; random sampling is sorted so ids stay monotone
    along the shape.
    """
    if distribution == PegDistribution.RANDOM:
        return np.sort(rng.uniform(0.0, 1.0, count))
    return np.arange(count, dtype=np.float64) / count


def _place_circle(request, rng):
    cx, cy = request.center
    radius = request.radius
    n = request.count

    if request.distribution == PegDistribution.SPIRAL:
        positions = []
        for i in range(n):
            angle = i * GOLDEN_ANGLE
            r = radius * math.sqrt(i / n)
            x = cx + r * math.cos(angle)
            y = cy + r * math.sin(angle)

            # Project anything beyond the rim back onto it
            dist = distance((cx, cy), (x, y))
            if dist > radius:
                ratio = radius / dist
                x = cx + (x - cx) * ratio
                y = cy + (y - cy) * ratio
            positions.append((x, y))
        return positions

    if request.distribution == PegDistribution.RANDOM:
        angles = np.sort(rng.uniform(0.0, 2 * math.pi, n))
    else:
        angles = request.start_angle + 2 * math.pi * np.arange(n) / n

    return [(cx + radius * math.cos(a), cy + radius * math.sin(a)) for a in angles]


def _polygon_vertices(request):
    """
    Regular polygon stretched to the drawing box.

    Vertex 0 is the top-left corner and vertices run clockwise on screen,
    so four sides give the full box rectangle.
    """
    sides = request.polygon_sides
    if isinstance(sides, bool) or not isinstance(sides, (int, np.integer)) or sides < 3:
        raise InvalidInputError(f"Polygon needs at least 3 sides, got {sides!r}")

    angles = math.pi + math.pi / sides + 2 * math.pi * np.arange(sides) / sides
    unit = np.stack([np.cos(angles), np.sin(angles)], axis=1)

    left, top, right, bottom = request.box
    mins = unit.min(axis=0)
    spans = unit.max(axis=0) - mins

    xs = left + (unit[:, 0] - mins[0]) / spans[0] * (right - left)
    ys = top + (unit[:, 1] - mins[1]) / spans[1] * (bottom - top)
    return np.stack([xs, ys], axis=1)


def _place_polygon(request, rng):
    vertices = _polygon_vertices(request)
    closed = np.vstack([vertices, vertices[:1]])

    edge_lengths = np.linalg.norm(np.diff(closed, axis=0), axis=1)
    cumulative = np.concatenate([[0.0], np.cumsum(edge_lengths)])
    perimeter = cumulative[-1]

    positions = []
    for fraction in _parameter_fractions(request.count, request.distribution, rng):
        s = fraction * perimeter
        idx = int(np.searchsorted(cumulative, s, side="right")) - 1
        idx = max(0, min(idx, len(edge_lengths) - 1))
        t = (s - cumulative[idx]) / edge_lengths[idx] if edge_lengths[idx] > 0 else 0.0
        positions.append(lerp_point(closed[idx], closed[idx + 1], t))

    return positions


def _heart(t):
    x = 16 * np.sin(t) ** 3
    y = 13 * np.cos(t) - 5 * np.cos(2 * t) - 2 * np.cos(3 * t) - np.cos(4 * t)
    # Screen y grows downward
    return x, -y


def _lemniscate(t):
    denom = 1 + np.sin(t) ** 2
    return np.cos(t) / denom, np.sin(t) * np.cos(t) / denom


CURVES = {
    "heart": _heart,
    "lemniscate": _lemniscate,
}


def _place_curve(request, rng):
    curve = CURVES.get(request.curve)
    if curve is None:
        raise InvalidInputError(f"Unknown curve {request.curve!r}, expected one of {sorted(CURVES)}")

    t = 2 * math.pi * _parameter_fractions(request.count, request.distribution, rng)
    xs, ys = curve(t)

    # Extent covers the peg samples too so no peg lands outside the box
    dense_x, dense_y = curve(np.linspace(0, 2 * math.pi, CURVE_EXTENT_SAMPLES))
    all_x = np.concatenate([dense_x, xs])
    all_y = np.concatenate([dense_y, ys])
    min_x, max_x = float(all_x.min()), float(all_x.max())
    min_y, max_y = float(all_y.min()), float(all_y.max())

    left, top, right, bottom = request.box
    scale = min((right - left) / (max_x - min_x), (bottom - top) / (max_y - min_y))
    mid_x = (min_x + max_x) / 2.0
    mid_y = (min_y + max_y) / 2.0
    cx, cy = request.center

    return [(cx + (x - mid_x) * scale, cy + (y - mid_y) * scale) for x, y in zip(xs, ys)]


def _place_star(request, rng):
    points = request.star_points
    if isinstance(points, bool) or not isinstance(points, (int, np.integer)) or points < 2:
        raise InvalidInputError(f"Star needs at least 2 points, got {points!r}")
    if not 0 < request.star_inner_ratio <= 1:
        raise InvalidInputError(f"Star inner ratio must be in (0, 1], got {request.star_inner_ratio}")

    cx, cy = request.center
    outer = request.radius
    inner = outer * request.star_inner_ratio
    sectors = 2 * points

    positions = []
    for fraction in _parameter_fractions(request.count, request.distribution, rng):
        sector = int(math.floor(fraction * sectors + 1e-9)) % sectors
        r = outer if sector % 2 == 0 else inner
        # Sector 0 starts at the top of the canvas
        angle = 2 * math.pi * fraction - math.pi / 2 + request.start_angle
        positions.append((cx + r * math.cos(angle), cy + r * math.sin(angle)))

    return positions


def _coerce_point(point):
    if isinstance(point, dict):
        point = (point.get("x"), point.get("y"))
    try:
        x, y = float(point[0]), float(point[1])
    except (TypeError, ValueError, IndexError):
        raise InvalidInputError(f"Custom point must be [x, y], got {point!r}")
    if not is_finite_point((x, y)):
        raise InvalidInputError(f"Custom point has non-finite coordinates: {point!r}")
    return x, y


def _place_custom(request, rng):
    if not request.custom_points:
        raise InvalidInputError("Custom shape requires a non-empty list of points")

    points = np.array([_coerce_point(p) for p in request.custom_points], dtype=np.float64)
    mins = points.min(axis=0)
    spans = points.max(axis=0) - mins

    if spans[0] <= 0 and spans[1] <= 0:
        raise InvalidInputError("Custom points must not all coincide")

    left, top, right, bottom = request.box
    scales = []
    if spans[0] > 0:
        scales.append((right - left) / spans[0])
    if spans[1] > 0:
        scales.append((bottom - top) / spans[1])
    scale = min(scales)

    mid = mins + spans / 2.0
    cx, cy = request.center

    positions = []
    for fraction in _parameter_fractions(request.count, request.distribution, rng):
        idx = min(int(math.floor(len(points) * fraction)), len(points) - 1)
        px, py = points[idx]
        positions.append((cx + (px - mid[0]) * scale, cy + (py - mid[1]) * scale))

    return positions


SHAPE_PLACEMENTS = {
    PegShape.CIRCLE: _place_circle,
    PegShape.POLYGON: _place_polygon,
    PegShape.CURVE: _place_curve,
    PegShape.STAR: _place_star,
    PegShape.CUSTOM: _place_custom,
}


@trace(label="snap_pegs_to_edges")
def snap_pegs_to_edges(pegs, edge_map, window=3):
    """
    Move each peg to the strongest edge pixel within +/- window pixels.

    A peg only moves when a candidate is strictly brighter than its current
    position. Ids are unchanged.
    """
    tracer = get_tracer()

    snapped = []
    moved = 0

    for peg in pegs:
        best_x, best_y = peg.x, peg.y
        best_score = edge_map.intensity_at(peg.x, peg.y)

        for dx in range(-window, window + 1):
            for dy in range(-window, window + 1):
                nx = peg.x + dx
                ny = peg.y + dy
                if not (0 <= nx < edge_map.width and 0 <= ny < edge_map.height):
                    continue
                score = edge_map.intensity_at(nx, ny)
                if score > best_score:
                    best_score = score
                    best_x, best_y = nx, ny

        if (best_x, best_y) != (peg.x, peg.y):
            moved += 1
        snapped.append(Peg(id=peg.id, x=best_x, y=best_y))

    tracer.event(f"Snapped {moved}/{len(pegs)} pegs to edges")

    return snapped


@trace(label="validate_pegs")
def validate_pegs(pegs, canvas_size, min_distance=5.0):
    """
    Drop pegs outside the canvas or closer than min_distance to an accepted peg.

    Pegs are processed in id order and the survivors are renumbered 0..k-1.
    A shorter list is a normal outcome.
    """
    tracer = get_tracer()
    width, height = canvas_size

    accepted = []
    for peg in sorted(pegs, key=lambda p: p.id):
        if not (0 <= peg.x < width and 0 <= peg.y < height):
            continue
        if any(distance(peg.position, other.position) < min_distance for other in accepted):
            continue
        accepted.append(peg)

    validated = [Peg(id=i, x=p.x, y=p.y) for i, p in enumerate(accepted)]

    rejected = len(pegs) - len(validated)
    if rejected:
        tracer.event(f"Rejected {rejected} pegs during validation", level="WARN")

    return validated


@trace(label="build_layout")
def build_layout(config, edge_map=None, debug_writer=None):
    """
    Run the configured layout: generate, then optionally snap and validate.

    Returns:
        (pegs, rejected_count)
    """
    layout = config.layout
    canvas_size = (config.canvas.width, config.canvas.height)

    pegs = generate_pegs(
        layout.peg_count,
        canvas_size,
        shape=layout.shape,
        margin=layout.margin,
        distribution=layout.distribution,
        start_angle=deg_to_rad(layout.start_angle_deg),
        polygon_sides=layout.polygon_sides,
        star_points=layout.star_points,
        star_inner_ratio=layout.star_inner_ratio,
        curve=layout.curve,
        custom_points=layout.custom_points,
        seed=layout.seed,
    )
    generated = len(pegs)

    if layout.snap_to_edges and edge_map is not None:
        pegs = snap_pegs_to_edges(pegs, edge_map, layout.snap_window)

    if layout.validate:
        pegs = validate_pegs(pegs, canvas_size, layout.min_peg_distance)

    if debug_writer:
        debug_writer.save_json({
            "shape": str(layout.shape),
            "distribution": str(layout.distribution),
            "requested": layout.peg_count,
            "generated": generated,
            "accepted": len(pegs),
        }, "layout", "layout_metrics.json")

    return pegs, generated - len(pegs)
