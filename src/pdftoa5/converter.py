# This Source Code Form is subject to the terms of the Mozilla Public
# License, v. 2.0. If a copy of the MPL was not distributed with this
# file, You can obtain one at https://mozilla.org/MPL/2.0/.

"""Core logic for normalizing a PDF to fixed-size booklet pages."""

# Standard Library
import logging
import threading
import time
from collections.abc import Callable
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path

# Third Party
import pikepdf

# Local
from .codec import CodecStatus, PdfCodec
from .exceptions import (
    ErrorKind,
    OptionsError,
    PdfToA5Error,
    SerializeError,
    TooLargeError,
    TransformCancelledError,
)
from .forms import inspect_and_flatten
from .geometry import A5, PageSize, normalize_box, sizes_match
from .padding import DEFAULT_PAGE_MULTIPLE, pages_to_add
from .transcoder import PageWarning, add_blank_pages, transcode_pages
from .utils import ensure_pdf_input, generate_output_path

logger = logging.getLogger(__name__)

DEFAULT_MAX_INPUT_BYTES = 200 * 1024 * 1024
DEFAULT_MAX_PAGES = 10_000

# One user-facing message per fatal error kind
USER_MESSAGES: dict[ErrorKind, str] = {
    ErrorKind.INVALID_INPUT_TYPE: "Please choose a valid PDF file.",
    ErrorKind.LOAD_ERROR: (
        "The PDF could not be read. The file may be damaged or password protected."
    ),
    ErrorKind.UNSUPPORTED_FORM_KIND: (
        "The PDF contains a dynamic (XFA) form. "
        "Print it to a new PDF first, then try again."
    ),
    ErrorKind.FORM_FLATTEN_ERROR: "The form fields of the PDF could not be flattened.",
    ErrorKind.TOO_LARGE: "The PDF is too large to process.",
    ErrorKind.SERIALIZE_ERROR: (
        "The converted PDF could not be written. This is an internal error."
    ),
    ErrorKind.CANCELLED: "Processing was cancelled.",
    ErrorKind.CODEC_UNAVAILABLE: "The PDF library is not available.",
}


class PipelineStage(Enum):
    """Stages of one transform invocation."""

    IDLE = "idle"
    LOADING = "loading"
    FORM_CHECKING = "form_checking"
    TRANSCODING = "transcoding"
    PADDING = "padding"
    SERIALIZING = "serializing"
    DONE = "done"
    FAILED = "failed"


@dataclass(frozen=True)
class NormalizeOptions:
    """Options for a transform.

    Attributes:
        target: Output page size (A5 portrait by default).
        page_multiple: Total page count is padded to a multiple of this.
        max_input_bytes: Largest accepted input, None for no limit.
        max_pages: Largest accepted page count, None for no limit.
        password: User password for encrypted input.
    """

    target: PageSize = A5
    page_multiple: int = DEFAULT_PAGE_MULTIPLE
    max_input_bytes: int | None = DEFAULT_MAX_INPUT_BYTES
    max_pages: int | None = DEFAULT_MAX_PAGES
    password: str = ""


def validate_options(options: NormalizeOptions) -> NormalizeOptions:
    """Checks option values.

    Args:
        options: Options to check.

    Returns:
        The same options.

    Raises:
        OptionsError: If a value is out of range.
    """
    if options.target.width <= 0 or options.target.height <= 0:
        raise OptionsError(
            f"Target page size must be positive: "
            f"{options.target.width} x {options.target.height}"
        )
    if options.page_multiple < 1:
        raise OptionsError(
            f"Page multiple must be at least 1: {options.page_multiple}"
        )
    if options.max_input_bytes is not None and options.max_input_bytes < 1:
        raise OptionsError(
            f"Maximum input size must be positive: {options.max_input_bytes}"
        )
    if options.max_pages is not None and options.max_pages < 0:
        raise OptionsError(
            f"Maximum page count must not be negative: {options.max_pages}"
        )
    return options


@dataclass(frozen=True)
class TransformSuccess:
    """Successful transform.

    Attributes:
        data: The output PDF.
        original_page_count: Pages in the input.
        added_page_count: Blank pages appended as padding.
        warnings: Pages that were left blank, with reasons.
        processing_time: Processing time in seconds.
    """

    data: bytes
    original_page_count: int
    added_page_count: int
    warnings: list[PageWarning] = field(default_factory=list)
    processing_time: float = 0.0
    success: bool = field(default=True, init=False)

    @property
    def total_page_count(self) -> int:
        return self.original_page_count + self.added_page_count


@dataclass(frozen=True)
class TransformFailure:
    """Failed transform; no output is produced.

    Attributes:
        kind: What went wrong.
        message: User-facing message for the kind.
        detail: Technical description of the cause.
        processing_time: Processing time in seconds.
    """

    kind: ErrorKind
    message: str
    detail: str | None = None
    processing_time: float = 0.0
    success: bool = field(default=False, init=False)


TransformResult = TransformSuccess | TransformFailure


def failure_from_error(
    error: PdfToA5Error, processing_time: float = 0.0
) -> TransformFailure:
    """Builds a TransformFailure for a pipeline exception."""
    kind = error.kind if error.kind is not None else ErrorKind.SERIALIZE_ERROR
    return TransformFailure(
        kind=kind,
        message=USER_MESSAGES[kind],
        detail=str(error),
        processing_time=processing_time,
    )


def _check_cancelled(cancel_event: threading.Event | None) -> None:
    if cancel_event is not None and cancel_event.is_set():
        raise TransformCancelledError("Transform cancelled")


def _verify_output(
    output: pikepdf.Pdf, expected_pages: int, target: PageSize, multiple: int
) -> None:
    """Checks the output invariants before it is written.

    Raises:
        SerializeError: If the page count or a page size is wrong.
    """
    count = len(output.pages)
    if count != expected_pages:
        raise SerializeError(
            f"Output has {count} page(s), expected {expected_pages}"
        )
    if count % multiple != 0:
        raise SerializeError(
            f"Output page count {count} is not a multiple of {multiple}"
        )
    for index, page in enumerate(output.pages):
        box = normalize_box(page.mediabox)
        if not sizes_match(box, target):
            raise SerializeError(
                f"Output page {index + 1} has size "
                f"{box[2] - box[0]:.2f} x {box[3] - box[1]:.2f}, "
                f"expected {target.width} x {target.height}"
            )


class PageNormalizer:
    """Runs the normalization pipeline on PDF bytes.

    Stages run strictly in order: load, form check / flatten, transcode,
    pad, serialize. A failing stage ends the run with a TransformFailure;
    a failing page only leaves its output page blank.

    Args:
        codec: PDF codec to use; a pikepdf-backed PdfCodec by default.
        options: Default options for :meth:`transform`.
    """

    def __init__(
        self,
        codec: PdfCodec | None = None,
        options: NormalizeOptions | None = None,
    ) -> None:
        self.codec = codec if codec is not None else PdfCodec()
        self.options = validate_options(options or NormalizeOptions())

    @property
    def status(self) -> CodecStatus:
        return self.codec.status

    def transform(
        self,
        data: bytes,
        options: NormalizeOptions | None = None,
        *,
        cancel_event: threading.Event | None = None,
        on_progress: Callable[[int, int], None] | None = None,
    ) -> TransformResult:
        """Normalizes a PDF.

        Args:
            data: Input PDF bytes.
            options: Options for this call; defaults to the instance options.
            cancel_event: Optional threading.Event; when set, the run stops
                and all partial output is discarded.
            on_progress: Optional callback(done, total) after each page.

        Returns:
            TransformSuccess with the output bytes and page counts, or
            TransformFailure.

        Raises:
            OptionsError: If *options* are invalid.
        """
        options = validate_options(options or self.options)
        start_time = time.perf_counter()
        stage = PipelineStage.IDLE

        def enter(next_stage: PipelineStage) -> None:
            nonlocal stage
            logger.debug("Stage: %s -> %s", stage.value, next_stage.value)
            stage = next_stage

        source: pikepdf.Pdf | None = None
        output: pikepdf.Pdf | None = None

        try:
            self.codec.ensure_ready()
            _check_cancelled(cancel_event)

            limit = options.max_input_bytes
            if limit is not None and len(data) > limit:
                raise TooLargeError(
                    f"Input is {len(data)} bytes, limit is {limit}"
                )

            enter(PipelineStage.LOADING)
            source = self.codec.load(data, password=options.password)
            original_page_count = len(source.pages)
            max_pages = options.max_pages
            if max_pages is not None and original_page_count > max_pages:
                raise TooLargeError(
                    f"Input has {original_page_count} pages, "
                    f"limit is {max_pages}"
                )

            enter(PipelineStage.FORM_CHECKING)
            kind, flattened = inspect_and_flatten(source)
            if flattened:
                logger.debug(
                    "Flattened %d widget(s) of a %s form", flattened, kind.value
                )
            _check_cancelled(cancel_event)

            enter(PipelineStage.TRANSCODING)
            output = self.codec.new()
            outcomes = transcode_pages(
                source,
                output,
                options.target,
                cancel_event=cancel_event,
                on_page=on_progress,
            )

            enter(PipelineStage.PADDING)
            added_page_count = pages_to_add(original_page_count, options.page_multiple)
            add_blank_pages(output, added_page_count, options.target)
            _check_cancelled(cancel_event)

            enter(PipelineStage.SERIALIZING)
            _verify_output(
                output,
                original_page_count + added_page_count,
                options.target,
                options.page_multiple,
            )
            result_bytes = self.codec.save(output)
            enter(PipelineStage.DONE)

        except PdfToA5Error as e:
            enter(PipelineStage.FAILED)
            if isinstance(e, SerializeError):
                logger.exception("Internal error while writing output")
            else:
                logger.error("Transform failed (%s): %s", e.kind, e)
            return failure_from_error(e, time.perf_counter() - start_time)

        except Exception as e:
            # Codec errors outside the page scope: unreadable structure while
            # loading, otherwise an internal defect
            failed_stage = stage
            enter(PipelineStage.FAILED)
            if failed_stage in (PipelineStage.LOADING, PipelineStage.FORM_CHECKING):
                kind = ErrorKind.LOAD_ERROR
                logger.error("PDF processing error: %s", e)
            else:
                kind = ErrorKind.SERIALIZE_ERROR
                logger.exception("Unexpected error during %s", failed_stage.value)
            return TransformFailure(
                kind=kind,
                message=USER_MESSAGES[kind],
                detail=f"Unexpected error during {failed_stage.value}: {e}",
                processing_time=time.perf_counter() - start_time,
            )

        finally:
            for pdf in (output, source):
                if pdf is not None:
                    try:
                        pdf.close()
                    except Exception:
                        pass

        processing_time = time.perf_counter() - start_time
        warnings = [o.warning for o in outcomes if o.warning is not None]
        logger.info(
            "Normalization successful: %d original + %d added page(s) (%.2f seconds)",
            original_page_count,
            added_page_count,
            processing_time,
        )
        return TransformSuccess(
            data=result_bytes,
            original_page_count=original_page_count,
            added_page_count=added_page_count,
            warnings=warnings,
            processing_time=processing_time,
        )


def transform(
    data: bytes,
    options: NormalizeOptions | None = None,
    *,
    cancel_event: threading.Event | None = None,
    on_progress: Callable[[int, int], None] | None = None,
) -> TransformResult:
    """Normalizes PDF bytes with a default PageNormalizer.

    See :meth:`PageNormalizer.transform`.
    """
    return PageNormalizer().transform(
        data, options, cancel_event=cancel_event, on_progress=on_progress
    )


def normalize_file(
    input_path: Path,
    output_path: Path | None = None,
    options: NormalizeOptions | None = None,
    *,
    force: bool = False,
    normalizer: PageNormalizer | None = None,
    cancel_event: threading.Event | None = None,
    on_progress: Callable[[int, int], None] | None = None,
) -> tuple[TransformResult, Path]:
    """Normalizes a PDF file and writes the result next to it.

    Args:
        input_path: Path to the input PDF.
        output_path: Path for the output; defaults to
            ``<stem>_<SIZE>_mod.pdf`` beside the input.
        options: Normalization options.
        force: If True, an existing output file is overwritten.
        normalizer: PageNormalizer to use; a default one if None.
        cancel_event: Optional threading.Event to cancel the run.
        on_progress: Optional callback(done, total) after each page.

    Returns:
        The transform result and the output path. The file is written
        only on success.

    Raises:
        FileNotFoundError: If the input does not exist.
        FileExistsError: If the output exists and *force* is False.
        OptionsError: If input and output are the same file.
    """
    options = validate_options(options or NormalizeOptions())
    if output_path is None:
        output_path = generate_output_path(input_path, options.target.name)

    if input_path.resolve() == output_path.resolve():
        raise OptionsError(f"Input and output paths must differ: {input_path}")
    if output_path.exists() and not force:
        raise FileExistsError(f"Output file already exists: {output_path}")

    logger.info(
        "Normalizing %s -> %s (%s)", input_path, output_path, options.target.name
    )
    data = input_path.read_bytes()

    try:
        ensure_pdf_input(data, input_path.name)
    except PdfToA5Error as e:
        logger.error("%s", e)
        return failure_from_error(e), output_path

    normalizer = normalizer if normalizer is not None else PageNormalizer()
    result = normalizer.transform(
        data, options, cancel_event=cancel_event, on_progress=on_progress
    )

    if isinstance(result, TransformSuccess):
        output_path.parent.mkdir(parents=True, exist_ok=True)
        output_path.write_bytes(result.data)
        logger.debug("Wrote %d bytes to %s", len(result.data), output_path)

    return result, output_path
