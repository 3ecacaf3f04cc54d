# This Source Code Form is subject to the terms of the Mozilla Public
# License, v. 2.0. If a copy of the MPL was not distributed with this
# file, You can obtain one at https://mozilla.org/MPL/2.0/.

"""Page sizes and the geometry used to place pages and appearances.

All values are in PDF points (1/72 inch). Boxes are
``(llx, lly, urx, ury)`` tuples, matrices are the six-number
``[a b c d e f]`` form used by the ``cm`` operator.
"""

import math
from dataclasses import dataclass

from .exceptions import OptionsError

Box = tuple[float, float, float, float]
MatrixValues = tuple[float, float, float, float, float, float]

IDENTITY: MatrixValues = (1.0, 0.0, 0.0, 1.0, 0.0, 0.0)

# Tolerance for floating-point coordinate comparison
_EPSILON = 1e-3


@dataclass(frozen=True)
class PageSize:
    """A named page size.

    Attributes:
        name: Label used in output names and messages (e.g. ``"A5"``).
        width: Width in points.
        height: Height in points.
    """

    name: str
    width: float
    height: float

    def landscape(self) -> "PageSize":
        """Returns the same size with the longer edge horizontal."""
        if self.width >= self.height:
            return self
        return PageSize(self.name, self.height, self.width)

    def portrait(self) -> "PageSize":
        """Returns the same size with the longer edge vertical."""
        if self.height >= self.width:
            return self
        return PageSize(self.name, self.height, self.width)

    def as_tuple(self) -> tuple[float, float]:
        return (self.width, self.height)


A4 = PageSize("A4", 595.28, 841.89)
A5 = PageSize("A5", 419.53, 595.28)
A6 = PageSize("A6", 297.64, 419.53)
B5 = PageSize("B5", 498.9, 708.66)
LETTER = PageSize("LETTER", 612.0, 792.0)

PAGE_SIZES: dict[str, PageSize] = {
    size.name: size for size in (A4, A5, A6, B5, LETTER)
}


def get_page_size(name: str, *, landscape: bool = False) -> PageSize:
    """Looks up a named page size.

    Args:
        name: Size name, case-insensitive (e.g. ``"a5"``).
        landscape: If True, the landscape orientation is returned.

    Returns:
        The matching PageSize.

    Raises:
        OptionsError: If the name is unknown.
    """
    size = PAGE_SIZES.get(name.upper())
    if size is None:
        raise OptionsError(
            f"Unknown page size: {name}. "
            f"Allowed: {', '.join(sorted(PAGE_SIZES))}"
        )
    return size.landscape() if landscape else size


@dataclass(frozen=True)
class Placement:
    """Where a page of intrinsic size (w, h) lands on the target page.

    Attributes:
        scale: Uniform scale factor ``min(W / w, H / h)``.
        x: Left offset of the scaled content.
        y: Bottom offset of the scaled content.
        width: Scaled width ``w * scale``.
        height: Scaled height ``h * scale``.
    """

    scale: float
    x: float
    y: float
    width: float
    height: float

    def fits_within(self, target: PageSize) -> bool:
        """True if the placed box lies inside the target page."""
        return (
            self.x >= -_EPSILON
            and self.y >= -_EPSILON
            and self.x + self.width <= target.width + _EPSILON
            and self.y + self.height <= target.height + _EPSILON
        )


def fit_and_center(width: float, height: float, target: PageSize) -> Placement:
    """Scales a (width, height) box to fit inside *target* and centers it.

    The scale is uniform, so the aspect ratio is kept; content is never
    cropped. Small pages are scaled up just as large pages are scaled down.

    Args:
        width: Intrinsic width of the source content.
        height: Intrinsic height of the source content.
        target: Target page size.

    Returns:
        The computed Placement.

    Raises:
        ValueError: If either dimension is zero, negative or not finite.
    """
    if not (math.isfinite(width) and math.isfinite(height)):
        raise ValueError(f"Non-finite page size: {width} x {height}")
    if width <= 0 or height <= 0:
        raise ValueError(f"Page has zero area: {width} x {height}")

    scale = min(target.width / width, target.height / height)
    scaled_width = width * scale
    scaled_height = height * scale
    return Placement(
        scale=scale,
        x=(target.width - scaled_width) / 2,
        y=(target.height - scaled_height) / 2,
        width=scaled_width,
        height=scaled_height,
    )


def normalize_box(values) -> Box:
    """Extract coordinates and ensure llx <= urx, lly <= ury.

    Args:
        values: Any sequence of four numbers (e.g. a pikepdf Array).

    Returns:
        (llx, lly, urx, ury) with swapped coordinates if needed.

    Raises:
        ValueError: If *values* is not four numbers.
    """
    coords = [float(v) for v in values]
    if len(coords) != 4:
        raise ValueError(f"Expected 4 box coordinates, got {len(coords)}")
    x1, y1, x2, y2 = coords
    return (min(x1, x2), min(y1, y2), max(x1, x2), max(y1, y2))


def parse_matrix(values) -> MatrixValues:
    """Converts a six-number array to a matrix tuple.

    Args:
        values: Sequence of six numbers, or None for the identity.

    Returns:
        Matrix values.

    Raises:
        ValueError: If *values* is not six numbers.
    """
    if values is None:
        return IDENTITY
    coords = tuple(float(v) for v in values)
    if len(coords) != 6:
        raise ValueError(f"Expected 6 matrix values, got {len(coords)}")
    return coords  # type: ignore[return-value]


def transform_box(box: Box, matrix: MatrixValues) -> Box:
    """Transforms a box and returns the bounding box of the result.

    Args:
        box: Box to transform.
        matrix: Matrix to apply.

    Returns:
        Axis-aligned bounding box of the transformed corners.
    """
    a, b, c, d, e, f = matrix
    llx, lly, urx, ury = box
    xs = []
    ys = []
    for px, py in ((llx, lly), (urx, lly), (urx, ury), (llx, ury)):
        xs.append(a * px + c * py + e)
        ys.append(b * px + d * py + f)
    return (min(xs), min(ys), max(xs), max(ys))


def box_size(box: Box) -> tuple[float, float]:
    return (box[2] - box[0], box[3] - box[1])


def map_box_matrix(source: Box, dest: Box) -> MatrixValues:
    """Matrix that maps the *source* box onto the *dest* box.

    Scales each axis independently, as required when placing an
    annotation appearance into its /Rect (ISO 32000-1, 12.5.5).

    Args:
        source: Box in the source coordinate space.
        dest: Box in the destination coordinate space.

    Returns:
        Matrix values.

    Raises:
        ValueError: If the source box has zero width or height.
    """
    src_w, src_h = box_size(source)
    if src_w <= 0 or src_h <= 0:
        raise ValueError("Cannot map a box with zero area")
    dst_w, dst_h = box_size(dest)
    sx = dst_w / src_w
    sy = dst_h / src_h
    return (sx, 0.0, 0.0, sy, dest[0] - source[0] * sx, dest[1] - source[1] * sy)


def format_number(value: float) -> str:
    """Formats a number for a content stream operand."""
    if abs(value) < 1e-9:
        return "0"
    text = f"{value:.6f}".rstrip("0").rstrip(".")
    return text if text != "-0" else "0"


def cm_operator(matrix: MatrixValues) -> str:
    """Renders a ``cm`` operator for *matrix*."""
    return " ".join(format_number(v) for v in matrix) + " cm"


def sizes_match(box: Box, target: PageSize) -> bool:
    """True if *box* is a MediaBox of exactly the target size."""
    width, height = box_size(box)
    return (
        abs(width - target.width) < _EPSILON
        and abs(height - target.height) < _EPSILON
    )
