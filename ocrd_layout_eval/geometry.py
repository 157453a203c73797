from typing import Optional
from dataclasses import dataclass

from shapely.geometry import box

from .errors import ValidationError

@dataclass(frozen=True)
class Rectangle:
    """
    Axis-aligned region in image pixel coordinates.

    ``right`` and ``bottom`` are exclusive, so a rectangle covers the
    pixel columns ``left .. right-1`` and rows ``top .. bottom-1``.
    """
    left: int
    top: int
    right: int
    bottom: int

    @classmethod
    def from_xywh(cls, x, y, w, h):
        """Construct from origin and size (as in Leptonica boxes)."""
        return cls(int(x), int(y), int(x) + int(w), int(y) + int(h))

    @property
    def width(self):
        return self.right - self.left

    @property
    def height(self):
        return self.bottom - self.top

    @property
    def area(self):
        return self.width * self.height

    @property
    def polygon(self):
        return box(self.left, self.top, self.right, self.bottom)

    @property
    def slices(self):
        """row and column slices for indexing numpy arrays"""
        return slice(self.top, self.bottom), slice(self.left, self.right)

    def validate(self):
        if self.width <= 0 or self.height <= 0:
            raise ValidationError(f"rectangle {self} has non-positive size {self.width}x{self.height}")
        return self

    def intersection(self, other: 'Rectangle') -> Optional['Rectangle']:
        """
        Get the intersection of both rectangles, or None if it is empty.

        Rectangles which merely touch at an edge or a corner do not intersect.
        """
        if min(self.width, self.height, other.width, other.height) <= 0:
            return None
        inter = self.polygon.intersection(other.polygon)
        # touching yields a LineString or Point
        if inter.is_empty or inter.area == 0.0:
            return None
        left, top, right, bottom = inter.bounds
        return Rectangle(int(left), int(top), int(right), int(bottom))

    def intersects(self, other: 'Rectangle') -> bool:
        return self.intersection(other) is not None

    def clip(self, width, height) -> Optional['Rectangle']:
        """Clip to the bounds of an image of the given size, or None if outside."""
        return self.intersection(Rectangle(0, 0, width, height))

    def __str__(self):
        return f"[{self.left},{self.top},{self.right},{self.bottom}]"
