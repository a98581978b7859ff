"""Axis-aligned rectangle helpers used by the spatial constraints."""

from __future__ import annotations

import math
from dataclasses import dataclass


@dataclass(frozen=True)
class Rect:
    """Axis-aligned rectangle in millimeters, origin at the top-left corner."""

    x: float
    y: float
    width: float
    height: float

    @property
    def right(self) -> float:
        return self.x + self.width

    @property
    def bottom(self) -> float:
        return self.y + self.height

    def translated(self, dx: float, dy: float) -> Rect:
        """Return a copy shifted by (*dx*, *dy*)."""
        return Rect(self.x + dx, self.y + dy, self.width, self.height)


def rects_overlap(a: Rect, b: Rect) -> bool:
    """Return True if the interiors of *a* and *b* intersect.

    Rectangles that only share an edge do not overlap.
    """
    return a.x < b.right and a.right > b.x and a.y < b.bottom and a.bottom > b.y


def is_within(inner: Rect, outer: Rect) -> bool:
    """Return True if *inner* lies completely inside *outer* (edges inclusive)."""
    return (
        inner.x >= outer.x
        and inner.y >= outer.y
        and inner.right <= outer.right
        and inner.bottom <= outer.bottom
    )


def clearance(a: Rect, b: Rect) -> float:
    """Edge-to-edge distance between two rectangles (0 when touching or overlapping)."""
    dx = max(0.0, b.x - a.right, a.x - b.right)
    dy = max(0.0, b.y - a.bottom, a.y - b.bottom)
    return math.hypot(dx, dy)
