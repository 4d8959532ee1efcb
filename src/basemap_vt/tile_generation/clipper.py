"""
Feature Clipping

Clips projected features against an axis-aligned band ``k1 <= v <= k2`` on
one axis. A tile is cut out of its parent by clipping twice: once on x, then
on y. Features crossing a band edge are copied and each copy is truncated,
so a feature straddling a tile boundary ends up in every tile it touches.
"""

from typing import List, Optional

from .features import GeometryType, ProjectedFeature, ProjectedPath
from ..utils.geometry_utils import signed_area


def clip(
    features: List[ProjectedFeature],
    scale: float,
    k1: float,
    k2: float,
    axis: int,
    min_all: float,
    max_all: float
) -> Optional[List[ProjectedFeature]]:
    """
    Clip features to a band on one axis.

    Args:
        features: Features to clip
        scale: Number of tiles per axis at the band's zoom; k1 and k2 are
            given in tile units and divided by it
        k1: Lower band edge
        k2: Upper band edge
        axis: 0 for x, 1 for y
        min_all: Minimum of all features on the axis
        max_all: Maximum of all features on the axis

    Returns:
        Clipped features, or None if nothing falls inside the band
    """
    k1 /= scale
    k2 /= scale

    if min_all >= k1 and max_all < k2:
        return features
    if max_all < k1 or min_all >= k2:
        return None

    clipped = []

    for feature in features:
        if axis == 0:
            low, high = feature.min_x, feature.max_x
        else:
            low, high = feature.min_y, feature.max_y

        if low >= k1 and high < k2:
            clipped.append(feature)
            continue
        if high < k1 or low >= k2:
            continue

        if feature.type == GeometryType.POINT:
            geometry = [
                [p[0], p[1], p[2]] for p in feature.geometry
                if k1 <= p[axis] <= k2
            ]
        elif feature.type == GeometryType.LINESTRING:
            geometry = []
            for path in feature.geometry:
                geometry.extend(clip_path(path, k1, k2, axis, is_polygon=False))
        else:
            geometry = []
            for polygon in feature.geometry:
                new_polygon = _clip_polygon(polygon, k1, k2, axis)
                if new_polygon:
                    geometry.append(new_polygon)

        if geometry:
            clipped.append(feature.derive(geometry))

    return clipped or None


def _clip_polygon(rings: List[ProjectedPath], k1: float, k2: float, axis: int) -> List[ProjectedPath]:
    outer = clip_path(rings[0], k1, k2, axis, is_polygon=True)
    if not outer:
        return []

    new_rings = outer
    for ring in rings[1:]:
        new_rings.extend(clip_path(ring, k1, k2, axis, is_polygon=True))
    return new_rings


def clip_path(
    path: ProjectedPath,
    k1: float,
    k2: float,
    axis: int,
    is_polygon: bool
) -> List[ProjectedPath]:
    """
    Clip one line or ring to a band.

    A line leaving and re-entering the band is split into several slices. A
    ring stays in one piece, running along the band edge where it was cut,
    and is closed again if clipping opened it. Zero-length slices and rings
    without area are dropped.
    """
    intersect = _intersect_x if axis == 0 else _intersect_y
    points = path.points
    slices = []
    current = []

    for i in range(len(points) - 1):
        ax, ay, az = points[i]
        bx, by = points[i + 1][0], points[i + 1][1]
        a = ax if axis == 0 else ay
        b = bx if axis == 0 else by
        exited = False

        if a < k1:
            # entering from below k1
            if b > k1:
                current.append(intersect(ax, ay, bx, by, k1))
        elif a > k2:
            # entering from above k2
            if b < k2:
                current.append(intersect(ax, ay, bx, by, k2))
        else:
            current.append([ax, ay, az])

        if b < k1 and a >= k1:
            current.append(intersect(ax, ay, bx, by, k1))
            exited = True

        if b > k2 and a <= k2:
            current.append(intersect(ax, ay, bx, by, k2))
            exited = True

        if not is_polygon and exited:
            slices.append(current)
            current = []

    if points:
        ax, ay, az = points[-1]
        a = ax if axis == 0 else ay
        if k1 <= a <= k2:
            current.append([ax, ay, az])

    if is_polygon and len(current) >= 2:
        first, last = current[0], current[-1]
        if first[0] != last[0] or first[1] != last[1]:
            current.append([first[0], first[1], first[2]])

    if current:
        slices.append(current)

    kept = []
    for points in slices:
        if is_polygon:
            if len(points) < 4 or signed_area(points) == 0:
                continue
        elif len(points) < 2 or _is_zero_length(points):
            continue
        kept.append(ProjectedPath(points=points, size=path.size))
    return kept


def _is_zero_length(points: List[List[float]]) -> bool:
    x0, y0 = points[0][0], points[0][1]
    return all(p[0] == x0 and p[1] == y0 for p in points)


def _intersect_x(ax: float, ay: float, bx: float, by: float, x: float) -> List[float]:
    t = (x - ax) / (bx - ax)
    return [x, ay + (by - ay) * t, 1]


def _intersect_y(ax: float, ay: float, bx: float, by: float, y: float) -> List[float]:
    t = (y - ay) / (by - ay)
    return [ax + (bx - ax) * t, y, 1]
