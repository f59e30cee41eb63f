"""Page box and mark placement geometry.

All values are PDF points in unrotated page space. Nothing here touches a
document, so placements can be checked directly.
"""

from collections.abc import Mapping
from dataclasses import dataclass

MM_TO_PT = 72 / 25.4

# Nested page boundaries, most specific first
BOX_PRIORITY = ("trim", "crop", "bleed", "art", "media")

# Inset floor keeps the mark clear of trimming tolerance
MIN_INSET_MM = 2.0


def mm_to_pt(value_mm: float) -> float:
    return value_mm * MM_TO_PT


@dataclass(frozen=True)
class Box:
    """Axis-aligned rectangle with lower-left origin."""

    x: float
    y: float
    width: float
    height: float

    @property
    def right(self) -> float:
        return self.x + self.width

    @property
    def top(self) -> float:
        return self.y + self.height

    def contains(self, other: "Box") -> bool:
        return (
            other.x >= self.x
            and other.y >= self.y
            and other.right <= self.right
            and other.top <= self.top
        )


@dataclass(frozen=True)
class Placement:
    """Lower-left corner of the mark square and its rotation in degrees."""

    x: float
    y: float
    rotate: int

    def footprint(self, size: float) -> Box:
        """Area covered by a mark of the given size.

        The mark is rotated about its own centre, so the footprint does not
        depend on the rotation.
        """
        return Box(self.x, self.y, size, size)


def pick_visible_box(boxes: Mapping[str, Box | None], page_size: tuple[float, float]) -> Box:
    """Choose the box that bounds what a reader actually sees.

    Args:
        boxes: Declared boxes keyed by name ('trim', 'crop', 'bleed', 'art',
            'media'); missing or None entries are undeclared.
        page_size: Nominal (width, height) used when no box is declared.

    Returns:
        Box: Highest priority declared box, else the full page.
    """
    for name in BOX_PRIORITY:
        box = boxes.get(name)
        if box is not None:
            return box
    width, height = page_size
    return Box(0, 0, width, height)


def normalize_rotation(rotation: int | float) -> int:
    """Map any rotation to [0, 360); multiples of 90 stay multiples of 90."""
    return int(rotation) % 360


def compute_placement(box: Box, rotation: int | float, size: float, inset: float) -> Placement:
    """Place a mark in the box's bottom-right corner as seen by the reader.

    Args:
        box: Visible box.
        rotation: Page /Rotate value.
        size: Mark side length in points.
        inset: Distance from both box edges in points.

    Returns:
        Placement: Unrotated coordinates and the rotation to draw with.
    """
    rotate = normalize_rotation(rotation)

    if rotate in (90, 180):
        x = box.x + inset
        y = box.y + box.height - size - inset
    else:
        # 0, 270 and any non-orthogonal value
        x = box.x + box.width - size - inset
        y = box.y + inset

    return Placement(x=x, y=y, rotate=rotate)


def inset_points(inset_mm: float) -> float:
    """Inset in points, never less than MIN_INSET_MM."""
    return mm_to_pt(max(inset_mm, MIN_INSET_MM))
