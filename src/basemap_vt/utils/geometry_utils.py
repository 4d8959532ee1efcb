"""
Geometry Utilities

Douglas-Peucker simplification and ring helpers used while projecting
features and while cutting tiles.

Simplification does not drop vertices up front. It ranks them: each vertex
is annotated with the squared distance at which Douglas-Peucker would have
kept it, so any tile can later select the vertices that matter at its own
zoom level with a single comparison.
"""

from typing import List, Sequence


class GeometrySimplifier:
    """Importance-ranking Douglas-Peucker simplifier."""

    @staticmethod
    def rank(points: List[List[float]], sq_tolerance: float) -> None:
        """
        Annotate ``points`` in place with their importance.

        Each point is a mutable ``[x, y, importance]`` list. The first and last
        points are always kept (importance 1); interior points kept by
        Douglas-Peucker at ``sq_tolerance`` receive their squared distance,
        the rest keep importance 0.
        """
        if not points:
            return

        last = len(points) - 1
        points[0][2] = 1
        GeometrySimplifier._simplify(points, 0, last, sq_tolerance)
        points[last][2] = 1

    @staticmethod
    def _simplify(points: List[List[float]], first: int, last: int, sq_tolerance: float) -> None:
        # Iterative to avoid hitting the recursion limit on dense lines
        stack = [(first, last)]
        while stack:
            first, last = stack.pop()

            max_sq_dist = sq_tolerance
            mid = first + ((last - first) >> 1)
            min_pos_to_mid = last - first
            index = None

            ax, ay = points[first][0], points[first][1]
            bx, by = points[last][0], points[last][1]

            for i in range(first + 1, last):
                d = sq_seg_dist(points[i][0], points[i][1], ax, ay, bx, by)
                if d > max_sq_dist:
                    index = i
                    max_sq_dist = d
                elif d == max_sq_dist:
                    # prefer the vertex closest to the middle so ties split evenly
                    pos_to_mid = abs(i - mid)
                    if pos_to_mid < min_pos_to_mid:
                        index = i
                        min_pos_to_mid = pos_to_mid

            if index is not None and max_sq_dist > sq_tolerance:
                points[index][2] = max_sq_dist
                if index - first > 1:
                    stack.append((first, index))
                if last - index > 1:
                    stack.append((index, last))


def sq_seg_dist(px: float, py: float, x: float, y: float, bx: float, by: float) -> float:
    """Squared distance from point (px, py) to segment (x, y)-(bx, by)."""
    dx = bx - x
    dy = by - y

    if dx != 0 or dy != 0:
        t = ((px - x) * dx + (py - y) * dy) / (dx * dx + dy * dy)
        if t > 1:
            x = bx
            y = by
        elif t > 0:
            x += dx * t
            y += dy * t

    dx = px - x
    dy = py - y
    return dx * dx + dy * dy


def signed_area(ring: Sequence[Sequence[float]]) -> float:
    """
    Twice the signed area of a ring.

    Positive for rings that run clockwise when y grows downward, which is
    how outer rings are wound in tile-local space.
    """
    area = 0.0
    n = len(ring)
    for i in range(n):
        ax, ay = ring[i - 1][0], ring[i - 1][1]
        bx, by = ring[i][0], ring[i][1]
        area += ax * by - bx * ay
    return area


def rewind(ring: List, clockwise: bool) -> None:
    """Reverse ``ring`` in place unless it already has the wanted winding."""
    area = signed_area(ring)
    if area != 0 and (area > 0) != clockwise:
        ring.reverse()
