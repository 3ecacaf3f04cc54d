# This Source Code Form is subject to the terms of the Mozilla Public
# License, v. 2.0. If a copy of the MPL was not distributed with this
# file, You can obtain one at https://mozilla.org/MPL/2.0/.

"""Page transcoding onto fixed-size output pages.

Every source page is turned into a Form XObject, copied into the output
document and drawn uniformly scaled and centered on a blank page of the
target size. A page whose content cannot be embedded leaves its output
page blank; the batch always continues.
"""

import logging
import threading
from collections.abc import Callable
from dataclasses import dataclass

import pikepdf
from pikepdf import Array, Name, Page, Pdf, Stream

from .exceptions import EmbedError, TransformCancelledError
from .geometry import (
    Box,
    PageSize,
    Placement,
    box_size,
    cm_operator,
    fit_and_center,
    normalize_box,
    parse_matrix,
    transform_box,
)
from .utils import resolve_indirect as _resolve_indirect

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PageWarning:
    """Non-fatal problem with a single page.

    Attributes:
        index: Zero-based page index.
        reason: Human-readable description.
    """

    index: int
    reason: str

    def __str__(self) -> str:
        return f"Page {self.index + 1} left blank: {self.reason}"


@dataclass(frozen=True)
class PageOutcome:
    """Result of transcoding one page.

    Attributes:
        index: Zero-based source page index.
        placement: Where the content was drawn, None if the page is blank.
        warning: Why the page is blank, None on success.
    """

    index: int
    placement: Placement | None = None
    warning: PageWarning | None = None

    @property
    def embedded(self) -> bool:
        return self.placement is not None


@dataclass(frozen=True)
class EmbeddedPage:
    """A source page copied into the output as a Form XObject.

    Attributes:
        xobject: The Form XObject owned by the output document.
        bbox: Visible box of the XObject after its /Matrix is applied.
    """

    xobject: Stream
    bbox: Box

    @property
    def size(self) -> tuple[float, float]:
        return box_size(self.bbox)


def _content_streams(page: Page) -> list[Stream]:
    """Returns the page's content streams.

    Raises:
        EmbedError: If /Contents is missing or not a stream / stream array.
    """
    contents = page.obj.get("/Contents")
    if contents is None:
        raise EmbedError("page has no content stream")
    contents = _resolve_indirect(contents)
    if isinstance(contents, Stream):
        return [contents]
    if isinstance(contents, Array):
        streams = [_resolve_indirect(item) for item in contents]
        if not all(isinstance(s, Stream) for s in streams):
            raise EmbedError("content array holds non-stream objects")
        return streams
    raise EmbedError("page /Contents is not a stream")


def _check_content(page: Page) -> None:
    """Validates that the page content decodes, is non-empty and parses.

    Raises:
        EmbedError: If the content cannot be used.
    """
    data = b""
    for stream in _content_streams(page):
        try:
            data += stream.read_bytes()
        except Exception as e:
            raise EmbedError(f"content stream could not be decoded: {e}") from e
    if not data.strip():
        raise EmbedError("content stream is empty")
    try:
        pikepdf.parse_content_stream(page)
    except Exception as e:
        raise EmbedError(f"content stream is malformed: {e}") from e


def embed_page(source_page: Page, output: Pdf) -> EmbeddedPage:
    """Imports a source page into *output* as a drawable Form XObject.

    The XObject accounts for the page's /Rotate and /UserUnit, so its
    transformed bounding box is the page's intrinsic visible size.

    Args:
        source_page: Page of the source document (not modified).
        output: Output document that will own the XObject.

    Returns:
        The embedded page.

    Raises:
        EmbedError: If the page cannot be embedded.
    """
    _check_content(source_page)
    try:
        formx = source_page.as_form_xobject()
        xobject = output.copy_foreign(formx)
        bbox = transform_box(
            normalize_box(xobject.get("/BBox")),
            parse_matrix(xobject.get("/Matrix")),
        )
    except EmbedError:
        raise
    except Exception as e:
        raise EmbedError(f"page could not be embedded: {e}") from e
    return EmbeddedPage(xobject=xobject, bbox=bbox)


def draw_embedded_page(
    output: Pdf, target_page: Page, embedded: EmbeddedPage, target: PageSize
) -> Placement:
    """Draws an embedded page scaled to fit and centered on *target_page*.

    Args:
        output: Output document owning *target_page*.
        target_page: Blank output page of the target size.
        embedded: Embedded source page.
        target: Target page size.

    Returns:
        The placement used.

    Raises:
        EmbedError: If the page has zero area.
    """
    width, height = embedded.size
    try:
        placement = fit_and_center(width, height, target)
    except ValueError as e:
        raise EmbedError(str(e)) from e

    llx, lly = embedded.bbox[0], embedded.bbox[1]
    matrix = (
        placement.scale,
        0.0,
        0.0,
        placement.scale,
        placement.x - llx * placement.scale,
        placement.y - lly * placement.scale,
    )
    name = target_page.add_resource(embedded.xobject, Name.XObject, prefix="Pg")
    content = f"q {cm_operator(matrix)} {name} Do Q\n".encode("ascii")
    target_page.obj.Contents = output.make_stream(content)
    return placement


def _transcode_slot(
    source_page: Page, output: Pdf, slot: int, index: int, target: PageSize
) -> PageOutcome:
    """Fills one output slot; page-level failures become a warning."""
    try:
        embedded = embed_page(source_page, output)
        placement = draw_embedded_page(output, output.pages[slot], embedded, target)
    except EmbedError as e:
        warning = PageWarning(index, str(e))
        logger.warning("%s", warning)
        return PageOutcome(index=index, warning=warning)
    except Exception as e:
        warning = PageWarning(index, f"unexpected error: {e}")
        logger.warning("%s", warning, exc_info=True)
        return PageOutcome(index=index, warning=warning)

    logger.debug(
        "Page %d placed at (%.2f, %.2f) size %.2f x %.2f (scale %.4f)",
        index + 1,
        placement.x,
        placement.y,
        placement.width,
        placement.height,
        placement.scale,
    )
    return PageOutcome(index=index, placement=placement)


def add_blank_pages(output: Pdf, count: int, target: PageSize) -> None:
    """Appends *count* empty pages of the target size."""
    for _ in range(count):
        output.add_blank_page(page_size=target.as_tuple())


def transcode_pages(
    source: Pdf,
    output: Pdf,
    target: PageSize,
    *,
    cancel_event: threading.Event | None = None,
    on_page: Callable[[int, int], None] | None = None,
) -> list[PageOutcome]:
    """Re-embeds every source page onto a target-sized output page.

    The output is first extended with one blank target page per source
    page; page ``i`` of the source is then drawn into slot
    ``start + i`` only, so output order never depends on which pages
    succeed.

    Args:
        source: Source document (read only).
        output: Output document to extend.
        target: Target page size.
        cancel_event: Optional threading.Event; when set, processing
            stops with TransformCancelledError.
        on_page: Optional callback(done, total) called after each page.

    Returns:
        One PageOutcome per source page, in page order.

    Raises:
        TransformCancelledError: If *cancel_event* is set.
    """
    total = len(source.pages)
    start = len(output.pages)
    add_blank_pages(output, total, target)

    outcomes: list[PageOutcome | None] = [None] * total
    for index in range(total):
        if cancel_event is not None and cancel_event.is_set():
            logger.info("Transcoding cancelled at page %d of %d", index + 1, total)
            raise TransformCancelledError("Transform cancelled")

        outcomes[index] = _transcode_slot(
            source.pages[index], output, start + index, index, target
        )
        if on_page is not None:
            on_page(index + 1, total)

    failed = sum(1 for o in outcomes if o is not None and not o.embedded)
    logger.info(
        "Transcoded %d page(s), %d left blank",
        total - failed,
        failed,
    )
    return [o for o in outcomes if o is not None]
