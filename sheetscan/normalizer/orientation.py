"""
Corner & Orientation Module
Reduces detected markers to the page quadrilateral and resolves which
corner is top-left using the asymmetric three-marker cluster
"""
import itertools
import math
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional, Sequence, Tuple
import logging

import cv2
import numpy as np

from ..core.constants import ClusterSearch
from .config import NormalizerConfig
from .types import MarkerCluster, MarkerPoint, Point, Quadrilateral

logger = logging.getLogger(__name__)


def resolve_page_corners(markers: Sequence[MarkerPoint]) -> Optional[Quadrilateral]:
    """
    Approximate the physical page corners by the minimum-area rotated
    rectangle enclosing every marker.

    Returns:
        Unordered quadrilateral, or None if fewer than 4 markers are given
    """
    if len(markers) < 4:
        return None

    pts = np.array([m.as_tuple() for m in markers], dtype=np.float32)
    box = cv2.boxPoints(cv2.minAreaRect(pts))
    return Quadrilateral.from_array(box)


# ----------------------------------------------------------------------------- #
# Cluster search                                                                #
# ----------------------------------------------------------------------------- #

class ClusterFinder(ABC):
    """
    Finds the three-marker orientation cluster.

    A vertical cluster is stacked along y (searched in landscape photos),
    a horizontal cluster along x (searched in portrait photos).
    """

    def __init__(self, max_cross_spread: float = 150.0, max_along_spread: float = 600.0):
        self.max_cross_spread = max_cross_spread
        self.max_along_spread = max_along_spread

    @classmethod
    def from_config(cls, config: NormalizerConfig) -> "ClusterFinder":
        return cls(config.cluster_max_cross_spread, config.cluster_max_along_spread)

    def qualifies(self, triple: Sequence[MarkerPoint], vertical: bool) -> bool:
        xs = [p.x for p in triple]
        ys = [p.y for p in triple]
        spread_x = max(xs) - min(xs)
        spread_y = max(ys) - min(ys)
        if vertical:
            return spread_x <= self.max_cross_spread and spread_y <= self.max_along_spread
        return spread_y <= self.max_cross_spread and spread_x <= self.max_along_spread

    @staticmethod
    def rank_key(triple: Sequence[MarkerPoint], vertical: bool) -> tuple:
        """Smallest leading coordinate wins; remaining fields only make the choice total."""
        xs = [p.x for p in triple]
        ys = [p.y for p in triple]
        spread = (max(xs) - min(xs)) + (max(ys) - min(ys))
        coords = tuple(sorted((p.x, p.y) for p in triple))
        if vertical:
            return (min(xs), min(ys), spread, coords)
        return (min(ys), min(xs), spread, coords)

    def _select(self, candidates: Iterable[Sequence[MarkerPoint]], vertical: bool) -> Optional[MarkerCluster]:
        best = None
        best_key = None
        for triple in candidates:
            if not self.qualifies(triple, vertical):
                continue
            key = self.rank_key(triple, vertical)
            if best_key is None or key < best_key:
                best, best_key = triple, key

        if best is None:
            return None

        along = (lambda p: (p.y, p.x)) if vertical else (lambda p: (p.x, p.y))
        return MarkerCluster(tuple(sorted(best, key=along)))

    @abstractmethod
    def find(self, markers: Sequence[MarkerPoint], vertical: bool) -> Optional[MarkerCluster]:
        """Return the winning cluster, or None if no three markers qualify."""


class BruteForceClusterFinder(ClusterFinder):
    """Scans every 3-subset; fine for the few dozen markers left after filtering."""

    def find(self, markers: Sequence[MarkerPoint], vertical: bool) -> Optional[MarkerCluster]:
        if len(markers) < 3:
            return None
        return self._select(itertools.combinations(markers, 3), vertical)


class GridClusterFinder(ClusterFinder):
    """
    Buckets markers into cells as large as the spread limits.

    A qualifying triple always fits in the 2x2 block of cells anchored at
    the cell of its (min x, min y), so only those blocks are scanned. The
    winner is the same one BruteForceClusterFinder would pick.
    """

    def _cell_size(self, vertical: bool) -> Tuple[float, float]:
        if vertical:
            return self.max_cross_spread, self.max_along_spread
        return self.max_along_spread, self.max_cross_spread

    def find(self, markers: Sequence[MarkerPoint], vertical: bool) -> Optional[MarkerCluster]:
        if len(markers) < 3:
            return None

        cw, ch = self._cell_size(vertical)

        def cell_of(x: float, y: float) -> Tuple[int, int]:
            return int(math.floor(x / cw)), int(math.floor(y / ch))

        buckets: Dict[Tuple[int, int], List[MarkerPoint]] = {}
        for m in markers:
            buckets.setdefault(cell_of(m.x, m.y), []).append(m)

        anchors = set()
        for (i, j) in buckets:
            for di in (0, -1):
                for dj in (0, -1):
                    anchors.add((i + di, j + dj))

        def candidates():
            for (i, j) in sorted(anchors):
                block = []
                for di in (0, 1):
                    for dj in (0, 1):
                        block.extend(buckets.get((i + di, j + dj), ()))
                for triple in itertools.combinations(block, 3):
                    anchor = cell_of(min(p.x for p in triple), min(p.y for p in triple))
                    if anchor == (i, j):
                        yield triple

        return self._select(candidates(), vertical)


def create_cluster_finder(config: NormalizerConfig) -> ClusterFinder:
    """Pick the cluster search implementation named by the config."""
    if config.cluster_search == ClusterSearch.GRID.value:
        return GridClusterFinder.from_config(config)
    return BruteForceClusterFinder.from_config(config)


# ----------------------------------------------------------------------------- #
# Corner ordering                                                               #
# ----------------------------------------------------------------------------- #

@dataclass(frozen=True)
class OrientationResult:
    """Ordered corners plus how they were obtained"""
    corners: Quadrilateral
    cluster: Optional[MarkerCluster] = None

    @property
    def used_default(self) -> bool:
        return self.cluster is None


def order_corners_by_default(corners: Quadrilateral) -> Quadrilateral:
    """
    Degraded ordering for photos that are already close to upright:
    the two smallest (y, x) points are the top edge.
    """
    pts = sorted(corners.points, key=lambda p: (p[1], p[0]))
    top = sorted(pts[:2], key=lambda p: p[0])
    bottom = sorted(pts[2:], key=lambda p: p[0], reverse=True)
    return Quadrilateral((top[0], top[1], bottom[0], bottom[1]))


def split_edges(corners: Quadrilateral, anchor: Point) -> Tuple[List[Point], List[Point]]:
    """
    Rank corners by squared distance to the cluster centroid.

    Returns:
        (marker-adjacent edge, opposite edge), two points each
    """
    ranked = sorted(
        corners.points,
        key=lambda p: (p[0] - anchor[0]) ** 2 + (p[1] - anchor[1]) ** 2
    )
    return ranked[:2], ranked[2:]


def order_corners_with_cluster(corners: Quadrilateral, cluster: MarkerCluster) -> Quadrilateral:
    """
    Order corners so the cluster sits on the right-hand edge of the page.

    The marker-adjacent edge becomes (top-right, bottom-right); the sign of
    the cross product between (quad centre -> edge midpoint) and the edge
    vector fixes which end is top. The opposite edge follows by direction
    alignment with the resolved edge.
    """
    (near1, near2), (far1, far2) = split_edges(corners, cluster.centroid)
    cx, cy = corners.centroid

    mid = ((near1[0] + near2[0]) / 2.0, (near1[1] + near2[1]) / 2.0)
    to_edge = (mid[0] - cx, mid[1] - cy)
    edge = (near2[0] - near1[0], near2[1] - near1[1])

    if to_edge[0] * edge[1] - to_edge[1] * edge[0] > 0:
        top_right, bottom_right = near1, near2
    else:
        top_right, bottom_right = near2, near1

    right_dir = (bottom_right[0] - top_right[0], bottom_right[1] - top_right[1])
    far_dir = (far2[0] - far1[0], far2[1] - far1[1])

    if right_dir[0] * far_dir[0] + right_dir[1] * far_dir[1] > 0:
        top_left, bottom_left = far1, far2
    else:
        top_left, bottom_left = far2, far1

    return Quadrilateral((top_left, top_right, bottom_right, bottom_left))


def resolve_orientation(
    corners: Quadrilateral,
    markers: Sequence[MarkerPoint],
    image_size: Tuple[int, int],
    config: NormalizerConfig,
    finder: ClusterFinder = None
) -> OrientationResult:
    """
    Order raw page corners as [TL, TR, BR, BL].

    Args:
        corners: Raw corners from resolve_page_corners
        markers: All detected markers (full resolution)
        image_size: (width, height) of the photo
        config: Normalizer configuration
        finder: Cluster search implementation (defaults from config)

    Returns:
        OrientationResult; falls back to default ordering when no cluster
        qualifies, never raises for that case
    """
    finder = finder or create_cluster_finder(config)
    width, height = image_size
    vertical = not height > width

    cluster = finder.find(markers, vertical)
    if cluster is None:
        logger.warning(
            f"No {'vertical' if vertical else 'horizontal'} orientation cluster among "
            f"{len(markers)} markers, using default corner ordering"
        )
        return OrientationResult(order_corners_by_default(corners))

    logger.debug(f"Orientation cluster at {cluster.centroid}")
    return OrientationResult(order_corners_with_cluster(corners, cluster), cluster)
