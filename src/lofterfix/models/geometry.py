from dataclasses import dataclass


@dataclass(frozen=True)
class BoundingBox:
    """Detector candidate in model input space: center, size and confidence."""

    cx: float
    cy: float
    w: float
    h: float
    confidence: float


@dataclass(frozen=True)
class ImageRegion:
    """Integer rectangle in image pixel space."""

    x: int
    y: int
    width: int
    height: int

    @property
    def is_empty(self) -> bool:
        return self.width <= 0 or self.height <= 0

    @property
    def area(self) -> int:
        if self.is_empty:
            return 0
        return self.width * self.height

    def slices(self):
        """Row and column slices selecting the region in an HxW(xC) array."""
        return slice(self.y, self.y + self.height), slice(self.x, self.x + self.width)


EMPTY_REGION = ImageRegion(0, 0, 0, 0)
