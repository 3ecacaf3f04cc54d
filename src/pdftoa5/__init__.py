# This Source Code Form is subject to the terms of the Mozilla Public
# License, v. 2.0. If a copy of the MPL was not distributed with this
# file, You can obtain one at https://mozilla.org/MPL/2.0/.

"""pdftoa5 - Normalize PDF files to A5 booklet pages."""

from importlib.metadata import PackageNotFoundError, version

from .codec import CodecStatus, PdfCodec
from .converter import (
    NormalizeOptions,
    PageNormalizer,
    TransformFailure,
    TransformResult,
    TransformSuccess,
    normalize_file,
    transform,
)
from .exceptions import (
    CodecUnavailableError,
    ErrorKind,
    FormFlattenError,
    InvalidInputTypeError,
    LoadError,
    OptionsError,
    PdfToA5Error,
    SerializeError,
    TooLargeError,
    TransformCancelledError,
    UnsupportedFormKindError,
)
from .geometry import A5, PAGE_SIZES, PageSize, Placement, fit_and_center
from .padding import pages_to_add
from .transcoder import PageWarning

try:
    __version__ = version("pdftoa5")
except PackageNotFoundError:
    __version__ = "unknown"

__all__ = [
    "__version__",
    "transform",
    "normalize_file",
    "pages_to_add",
    "fit_and_center",
    "PageNormalizer",
    "NormalizeOptions",
    "TransformResult",
    "TransformSuccess",
    "TransformFailure",
    "PageWarning",
    "PdfCodec",
    "CodecStatus",
    "PageSize",
    "Placement",
    "A5",
    "PAGE_SIZES",
    "ErrorKind",
    "PdfToA5Error",
    "OptionsError",
    "InvalidInputTypeError",
    "LoadError",
    "UnsupportedFormKindError",
    "FormFlattenError",
    "TooLargeError",
    "SerializeError",
    "TransformCancelledError",
    "CodecUnavailableError",
]
