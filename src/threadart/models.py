"""
Data models for thread patterns.

Pegs, connections, paths and run results are pydantic models so they can be
validated and dumped to JSON by callers. The edge map wraps a read-only numpy
array and is shared by every downstream stage without copying.
"""

import hashlib
from dataclasses import dataclass
from enum import Enum
from typing import List, Optional

import numpy as np
from pydantic import BaseModel, ConfigDict, Field

from threadart.utils.mathutils import distance, normalized_key


class InvalidInputError(ValueError):
    """Raised before any computation when a caller-supplied value is out of range."""


class PegShape(str, Enum):
    """Closed set of peg layout shapes."""
    CIRCLE = "circle"
    POLYGON = "polygon"
    CURVE = "parametric-curve"
    STAR = "star"
    CUSTOM = "custom-points"


class PegDistribution(str, Enum):
    """How peg parameters are spread along the shape."""
    EVEN = "even-angle"
    SPIRAL = "golden-angle-spiral"
    RANDOM = "random-angle"


class EdgeOutputMode(str, Enum):
    CONTINUOUS = "continuous"
    BINARY = "binary"


class StopReason(str, Enum):
    """Why the synthesis loop ended."""
    MAX_LINES = "max_lines"
    NO_CANDIDATES = "no_candidates"
    BELOW_CUTOFF = "below_cutoff"


class ScorerKind(str, Enum):
    EDGE_MAP = "edge_map"
    RANDOM_FALLBACK = "random_fallback"


@dataclass(frozen=True)
class EdgeMap:
    """
    Per-pixel edge intensity (0-255), indexed as data[y, x].

    The array is copied on construction and the copy is marked read-only.
    """
    data: np.ndarray

    def __post_init__(self):
        if self.data.ndim != 2:
            raise InvalidInputError(f"EdgeMap must be 2D, got shape {self.data.shape}")
        data = np.array(self.data, copy=True)
        data.flags.writeable = False
        object.__setattr__(self, "data", data)

    @classmethod
    def from_array(cls, array):
        """Build an edge map from any 2D array, clipping into uint8."""
        arr = np.clip(np.asarray(array, dtype=np.float64), 0, 255).astype(np.uint8)
        return cls(data=arr)

    @property
    def width(self):
        return self.data.shape[1]

    @property
    def height(self):
        return self.data.shape[0]

    def in_bounds(self, x, y):
        return 0 <= x < self.width and 0 <= y < self.height

    def intensity_at(self, x, y):
        """Intensity at the pixel containing (x, y), or 0 outside the map."""
        xi = int(np.floor(x))
        yi = int(np.floor(y))
        if not self.in_bounds(xi, yi):
            return 0
        return int(self.data[yi, xi])


class Peg(BaseModel):
    """A fixed anchor point on the board."""
    id: int = Field(..., ge=0)
    x: float
    y: float

    model_config = ConfigDict(frozen=True)

    @property
    def position(self):
        return (self.x, self.y)


class Connection(BaseModel):
    """One straight thread segment between two pegs."""
    from_id: int = Field(..., ge=0)
    to_id: int = Field(..., ge=0)
    start: List[float] = Field(..., min_length=2, max_length=2)
    end: List[float] = Field(..., min_length=2, max_length=2)
    length: float = Field(..., ge=0.0)

    model_config = ConfigDict(extra="forbid")

    @classmethod
    def between(cls, from_peg, to_peg):
        """Create a connection from one peg to another."""
        return cls.from_points(from_peg.id, to_peg.id, from_peg.position, to_peg.position)

    @classmethod
    def from_points(cls, from_id, to_id, start, end):
        return cls(
            from_id=from_id,
            to_id=to_id,
            start=[float(start[0]), float(start[1])],
            end=[float(end[0]), float(end[1])],
            length=distance(start, end),
        )

    @property
    def key(self):
        return normalized_key(self.from_id, self.to_id)


class Path(BaseModel):
    """Ordered walk of connections in stringing order."""
    connections: List[Connection] = Field(default_factory=list)

    model_config = ConfigDict(extra="forbid")

    def __len__(self):
        return len(self.connections)

    def keys(self):
        """Normalized keys of all connections, in order."""
        return [c.key for c in self.connections]

    def is_walk(self):
        """Check that each connection starts where the previous one ended."""
        for prev, curr in zip(self.connections, self.connections[1:]):
            if curr.from_id != prev.to_id:
                return False
        return True

    @property
    def total_length(self):
        return sum(c.length for c in self.connections)


class RunMetadata(BaseModel):
    """Flags and counters describing how a pattern run went."""
    scorer: ScorerKind = ScorerKind.EDGE_MAP
    reduced_fidelity: bool = False
    degenerate: bool = False
    stop_reason: StopReason = StopReason.MAX_LINES
    requested_lines: int = 0
    generated_lines: int = 0
    peg_count: int = 0
    rejected_pegs: int = 0
    refine_iterations: int = 0
    refined_connections: int = 0

    model_config = ConfigDict(extra="forbid")


class PatternResult(BaseModel):
    """Everything a run hands over to rendering, export or persistence."""
    pattern_id: str
    canvas_width: int
    canvas_height: int
    pegs: List[Peg] = Field(default_factory=list)
    path: Path = Field(default_factory=Path)
    quality: float = Field(default=0.0, ge=0.0)
    metadata: RunMetadata = Field(default_factory=RunMetadata)
    edge_map: Optional[EdgeMap] = Field(default=None, exclude=True)

    model_config = ConfigDict(arbitrary_types_allowed=True)


def path_to_pairs(path):
    """Serialize a path to a list of (from_id, to_id) pairs."""
    return [(c.from_id, c.to_id) for c in path.connections]


def path_from_pairs(pairs, pegs):
    """
    Rebuild a path from (from_id, to_id) pairs by looking pegs up by id.

    Raises InvalidInputError when a pair names a peg that is not in the list.
    """
    by_id = {peg.id: peg for peg in pegs}
    connections = []
    for from_id, to_id in pairs:
        if from_id not in by_id or to_id not in by_id:
            raise InvalidInputError(f"Unknown peg id in pair ({from_id}, {to_id})")
        connections.append(Connection.between(by_id[from_id], by_id[to_id]))
    return Path(connections=connections)


def generate_pattern_id(pegs, pairs, round_digits=2):
    """
    Generate a deterministic pattern ID from peg positions and thread order.

    Rounds coordinates to avoid floating point instability.
    """
    rounded = [(p.id, round(p.x, round_digits), round(p.y, round_digits)) for p in pegs]
    data = f"{rounded}:{list(pairs)}"
    h = hashlib.sha256(data.encode()).hexdigest()[:12]
    return f"pattern_{h}"
