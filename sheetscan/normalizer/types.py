"""
Core data types shared across normalization stages.
"""
from dataclasses import dataclass, field
from typing import List, Optional, Sequence, Tuple

import numpy as np


Point = Tuple[float, float]


@dataclass(frozen=True)
class RasterImage:
    """
    Immutable pixel buffer.

    pixels: np.ndarray of shape (H, W) or (H, W, C), dtype uint8. The array is
    marked read-only; stages produce a new RasterImage instead of writing to it.

    The constructor takes ownership of the array it is given: that buffer
    becomes read-only for every holder. Stages use it for arrays they have
    just produced. Caller-owned arrays go through from_array, which copies.
    """
    pixels: np.ndarray

    def __post_init__(self):
        if self.pixels is None or self.pixels.ndim not in (2, 3) or self.pixels.size == 0:
            raise ValueError("RasterImage requires a non-empty 2D or 3D pixel array")
        self.pixels.setflags(write=False)

    @classmethod
    def from_array(cls, array: np.ndarray) -> "RasterImage":
        """Take an owned, read-only copy of a caller array."""
        return cls(np.array(array, dtype=np.uint8, copy=True))

    @property
    def height(self) -> int:
        return int(self.pixels.shape[0])

    @property
    def width(self) -> int:
        return int(self.pixels.shape[1])

    @property
    def channels(self) -> int:
        return 1 if self.pixels.ndim == 2 else int(self.pixels.shape[2])

    @property
    def shape(self) -> Tuple[int, ...]:
        return self.pixels.shape

    def writable_copy(self) -> np.ndarray:
        """Return a scratch buffer a stage may modify."""
        return self.pixels.copy()


@dataclass(frozen=True)
class MarkerPoint:
    """Centroid of an accepted marker contour plus its measured area"""
    x: float
    y: float
    area: float = 0.0

    def as_tuple(self) -> Point:
        return (self.x, self.y)

    def scaled(self, factor: float) -> "MarkerPoint":
        """Map a point found at detection scale back to full resolution."""
        return MarkerPoint(self.x / factor, self.y / factor, self.area / (factor * factor))


@dataclass(frozen=True)
class MarkerCluster:
    """Three markers forming the orientation-disambiguation shape"""
    points: Tuple[MarkerPoint, MarkerPoint, MarkerPoint]

    @property
    def spread_x(self) -> float:
        xs = [p.x for p in self.points]
        return max(xs) - min(xs)

    @property
    def spread_y(self) -> float:
        ys = [p.y for p in self.points]
        return max(ys) - min(ys)

    @property
    def centroid(self) -> Point:
        return (
            sum(p.x for p in self.points) / 3.0,
            sum(p.y for p in self.points) / 3.0,
        )


def _cross(o: Point, a: Point, b: Point) -> float:
    return (a[0] - o[0]) * (b[1] - o[1]) - (a[1] - o[1]) * (b[0] - o[0])


def _segments_cross(p1: Point, p2: Point, q1: Point, q2: Point) -> bool:
    """Proper intersection test for two closed segments."""
    d1 = _cross(q1, q2, p1)
    d2 = _cross(q1, q2, p2)
    d3 = _cross(p1, p2, q1)
    d4 = _cross(p1, p2, q2)
    return d1 * d2 < 0 and d3 * d4 < 0


@dataclass(frozen=True)
class Quadrilateral:
    """
    Four corner points in image coordinates (pixels).

    After orientation resolution the order is always
    [top-left, top-right, bottom-right, bottom-left].
    """
    points: Tuple[Point, Point, Point, Point]

    def __post_init__(self):
        if len(self.points) != 4:
            raise ValueError(f"Quadrilateral needs exactly 4 points, got {len(self.points)}")
        object.__setattr__(
            self, "points", tuple((float(x), float(y)) for x, y in self.points)
        )

    @classmethod
    def from_array(cls, pts: np.ndarray) -> "Quadrilateral":
        pts = np.asarray(pts, dtype=np.float64).reshape(4, 2)
        return cls(tuple(map(tuple, pts)))

    @property
    def top_left(self) -> Point:
        return self.points[0]

    @property
    def top_right(self) -> Point:
        return self.points[1]

    @property
    def bottom_right(self) -> Point:
        return self.points[2]

    @property
    def bottom_left(self) -> Point:
        return self.points[3]

    @property
    def centroid(self) -> Point:
        return (
            sum(p[0] for p in self.points) / 4.0,
            sum(p[1] for p in self.points) / 4.0,
        )

    def as_array(self) -> np.ndarray:
        return np.array(self.points, dtype=np.float32)

    def signed_area(self) -> float:
        """Shoelace area; positive for clockwise order on screen (y axis down)."""
        total = 0.0
        for i in range(4):
            x1, y1 = self.points[i]
            x2, y2 = self.points[(i + 1) % 4]
            total += x1 * y2 - x2 * y1
        return total / 2.0

    def is_self_intersecting(self) -> bool:
        tl, tr, br, bl = self.points
        return _segments_cross(tl, tr, br, bl) or _segments_cross(tr, br, bl, tl)

    def scaled(self, factor: float) -> "Quadrilateral":
        return Quadrilateral(tuple((x / factor, y / factor) for x, y in self.points))


@dataclass(frozen=True)
class HomographyTransform:
    """3x3 projective matrix onto a width x height destination rectangle"""
    matrix: np.ndarray
    width: int
    height: int

    def apply(self, points: Sequence[Point]) -> List[Point]:
        """Map source points into the destination frame."""
        pts = np.hstack([np.asarray(points, dtype=np.float64), np.ones((len(points), 1))])
        mapped = (self.matrix @ pts.T).T
        mapped = mapped[:, :2] / mapped[:, 2:3]
        return [tuple(p) for p in mapped]


@dataclass
class Segment:
    """One photographed piece of a multi-part capture"""
    index: int
    raw: Optional[RasterImage] = None
    normalized: Optional[RasterImage] = None
    used_fallback: bool = False
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.normalized is not None


@dataclass(frozen=True)
class StitchedImage:
    """Horizontal composite of normalized segments"""
    image: RasterImage
    segment_widths: Tuple[int, ...]
    gutter: int
    skipped: Tuple[int, ...] = field(default_factory=tuple)

    @property
    def width(self) -> int:
        return self.image.width

    @property
    def height(self) -> int:
        return self.image.height

    @property
    def segment_count(self) -> int:
        return len(self.segment_widths)
