# This Source Code Form is subject to the terms of the Mozilla Public
# License, v. 2.0. If a copy of the MPL was not distributed with this
# file, You can obtain one at https://mozilla.org/MPL/2.0/.

"""Form inspection and flattening.

Dynamic XFA forms cannot be reproduced by re-embedding page content and
are rejected. Static AcroForm fields are flattened: each widget's normal
appearance is drawn into its page's content stream and the interactive
form is removed.
"""

import logging
from enum import Enum

from pikepdf import Array, Dictionary, Name, Pdf, Stream

from .exceptions import FormFlattenError, UnsupportedFormKindError
from .geometry import (
    box_size,
    cm_operator,
    map_box_matrix,
    normalize_box,
    parse_matrix,
    transform_box,
)
from .utils import find_inherited
from .utils import resolve_indirect as _resolve_indirect

logger = logging.getLogger(__name__)

# Annotation Flag Bits (PDF Reference)
# Bit 2 = Hidden flag (annotation is completely hidden)
ANNOT_FLAG_HIDDEN = 1 << 1
# Bit 3 = Print flag (annotation is printed)
ANNOT_FLAG_PRINT = 1 << 2

SUPPORTED_FIELD_TYPES = frozenset({"/Tx", "/Btn", "/Ch", "/Sig"})

# Depth limit for /Parent lookups in the field hierarchy
_MAX_FIELD_DEPTH = 32


class FormKind(Enum):
    """Interactive form found in a document."""

    NONE = "none"
    ACROFORM = "acroform"
    XFA = "xfa"


def _get_acroform(pdf: Pdf) -> Dictionary | None:
    if "/AcroForm" not in pdf.Root:
        return None
    acroform = _resolve_indirect(pdf.Root.AcroForm)
    if not isinstance(acroform, Dictionary):
        return None
    return acroform


def detect_form_kind(pdf: Pdf) -> FormKind:
    """Classifies the interactive form of a document.

    /XFA (stream or array of alternating name/stream pairs) or a set
    /NeedsRendering flag marks a dynamic form, even when AcroForm fields
    are present as well.

    Args:
        pdf: Opened pikepdf PDF object.

    Returns:
        The detected FormKind.
    """
    acroform = _get_acroform(pdf)
    if acroform is None:
        return FormKind.NONE

    if "/XFA" in acroform:
        return FormKind.XFA
    if bool(acroform.get("/NeedsRendering", False)):
        return FormKind.XFA

    fields = _resolve_indirect(acroform.get("/Fields"))
    if isinstance(fields, Array) and len(fields) > 0:
        return FormKind.ACROFORM
    return FormKind.NONE


def _get_field_type(annot: Dictionary) -> str | None:
    """Returns /FT of a widget, following the /Parent field chain."""
    node = annot
    for _ in range(_MAX_FIELD_DEPTH):
        ft = node.get("/FT")
        if ft is not None:
            return str(ft)
        parent = node.get("/Parent")
        if parent is None:
            return None
        node = _resolve_indirect(parent)
        if not isinstance(node, Dictionary):
            return None
    return None


def _is_printed(annot: Dictionary) -> bool:
    """True if the widget appears on paper: Print set, Hidden clear.

    Invisible only applies to unknown annotation types and NoView only
    to the screen, so neither affects a widget in print output.
    """
    try:
        flags = int(annot.get("/F", 0))
    except (TypeError, ValueError):
        return False
    return bool(flags & ANNOT_FLAG_PRINT) and not flags & ANNOT_FLAG_HIDDEN


def _normal_appearance(annot: Dictionary) -> Stream | None:
    """Picks the normal appearance stream, honouring /AS for state dicts."""
    ap = _resolve_indirect(annot.get("/AP"))
    if not isinstance(ap, Dictionary):
        return None
    normal = _resolve_indirect(ap.get("/N"))
    if isinstance(normal, Stream):
        return normal
    if isinstance(normal, Dictionary):
        state = annot.get("/AS")
        if state is None:
            return None
        candidate = _resolve_indirect(normal.get(str(state)))
        if isinstance(candidate, Stream):
            return candidate
    return None


def _appearance_matrix(appearance: Stream, annot: Dictionary):
    """Matrix placing *appearance* into the widget /Rect, or None if empty.

    The appearance BBox is transformed by its /Matrix and the result is
    mapped onto /Rect (ISO 32000-1, 12.5.5). The form's own /Matrix is
    applied by ``Do``, so only the mapping is returned.
    """
    bbox = normalize_box(appearance.get("/BBox"))
    matrix = parse_matrix(appearance.get("/Matrix"))
    placed = transform_box(bbox, matrix)
    rect = normalize_box(annot.get("/Rect"))
    if min(box_size(placed)) <= 0 or min(box_size(rect)) <= 0:
        return None
    return map_box_matrix(placed, rect)


def _apply_default_resources(appearance: Stream, default_resources: Dictionary) -> None:
    """Gives an appearance the /DR entries it does not define itself.

    Appearance streams may leave out /Resources, or some of its names,
    and rely on the AcroForm default resources instead.
    """
    resources = _resolve_indirect(appearance.get("/Resources"))
    if not isinstance(resources, Dictionary):
        appearance.Resources = default_resources
        return

    for category in default_resources.keys():
        defaults = _resolve_indirect(default_resources[category])
        if not isinstance(defaults, Dictionary):
            continue
        existing = _resolve_indirect(resources.get(category))
        if existing is None:
            resources[category] = defaults
        elif isinstance(existing, Dictionary):
            for name in defaults.keys():
                if name not in existing:
                    existing[name] = defaults[name]


def _append_page_content(pdf: Pdf, page, operations: list[str]) -> None:
    """Appends drawing operations after the page's existing content.

    The existing content is wrapped in ``q``/``Q`` so a graphics state
    left modified by it does not affect the appended operations.
    """
    page_dict = page.obj
    parts: list[Stream] = []
    existing = _resolve_indirect(page_dict.get("/Contents"))
    if isinstance(existing, Array):
        parts.extend(existing)
    elif isinstance(existing, Stream):
        parts.append(existing)

    tail = "\nQ\n" + "\n".join(operations) + "\n"
    page_dict.Contents = Array(
        [pdf.make_stream(b"q\n"), *parts, pdf.make_stream(tail.encode("ascii"))]
    )


def _flatten_page_widgets(
    pdf: Pdf, page, page_index: int, default_resources: Dictionary | None = None
) -> int:
    """Draws and removes the widgets of one page.

    Returns:
        Number of widget appearances drawn.
    """
    page_dict = page.obj
    annots = _resolve_indirect(page_dict.get("/Annots"))
    if not isinstance(annots, Array):
        return 0

    # Inherited resources must live on the page before we add to them
    if "/Resources" not in page_dict:
        inherited = find_inherited(page_dict, "/Resources")
        if inherited is not None:
            page_dict.Resources = _resolve_indirect(inherited)

    kept: list = []
    operations: list[str] = []
    for annot_ref in annots:
        annot = _resolve_indirect(annot_ref)
        if not isinstance(annot, Dictionary) or str(annot.get("/Subtype")) != "/Widget":
            kept.append(annot_ref)
            continue

        field_type = _get_field_type(annot)
        if field_type is not None and field_type not in SUPPORTED_FIELD_TYPES:
            raise FormFlattenError(
                f"Unsupported form field type {field_type} on page {page_index + 1}"
            )

        if not _is_printed(annot):
            continue
        appearance = _normal_appearance(annot)
        if appearance is None:
            logger.debug("Widget on page %d has no appearance", page_index + 1)
            continue
        matrix = _appearance_matrix(appearance, annot)
        if matrix is None:
            continue

        if default_resources is not None:
            _apply_default_resources(appearance, default_resources)
        name = page.add_resource(appearance, Name.XObject, prefix="Flat")
        operations.append(f"q {cm_operator(matrix)} {name} Do Q")

    if operations:
        _append_page_content(pdf, page, operations)

    if len(kept) != len(annots):
        if kept:
            page_dict.Annots = Array(kept)
        else:
            del page_dict["/Annots"]

    return len(operations)


def flatten_form_fields(pdf: Pdf) -> int:
    """Flattens all AcroForm widgets into static page content.

    When /NeedAppearances is set, appearance streams are regenerated
    first so the drawn content shows the current field values.

    Args:
        pdf: Opened pikepdf PDF object (modified in place).

    Returns:
        Number of widget appearances drawn into page content.

    Raises:
        FormFlattenError: If a field cannot be flattened.
    """
    acroform = _get_acroform(pdf)
    if acroform is None:
        return 0

    if bool(acroform.get("/NeedAppearances", False)):
        logger.debug("Generating appearance streams for form fields")
        pdf.generate_appearance_streams()

    # /DR goes away with the AcroForm dictionary
    default_resources = _resolve_indirect(acroform.get("/DR"))
    if isinstance(default_resources, Dictionary):
        if not default_resources.is_indirect:
            default_resources = pdf.make_indirect(default_resources)
    else:
        default_resources = None

    flattened = 0
    for page_index, page in enumerate(pdf.pages):
        flattened += _flatten_page_widgets(
            pdf, page, page_index, default_resources
        )

    del pdf.Root["/AcroForm"]
    logger.info("%d form field widget(s) flattened", flattened)
    return flattened


def inspect_and_flatten(pdf: Pdf) -> tuple[FormKind, int]:
    """Rejects dynamic forms and flattens static ones.

    Flattening is all-or-nothing: any failure aborts the whole document.

    Args:
        pdf: Opened pikepdf PDF object (modified in place).

    Returns:
        The detected FormKind and the number of widgets flattened.

    Raises:
        UnsupportedFormKindError: If the document has an XFA form.
        FormFlattenError: If flattening fails.
    """
    kind = detect_form_kind(pdf)
    logger.debug("Form kind: %s", kind.value)

    if kind is FormKind.XFA:
        raise UnsupportedFormKindError(
            "PDF contains a dynamic XFA form, which cannot be converted. "
            "Print it to a new PDF first."
        )
    if kind is FormKind.NONE:
        return kind, 0

    try:
        return kind, flatten_form_fields(pdf)
    except FormFlattenError:
        raise
    except Exception as e:
        raise FormFlattenError(f"Form fields could not be flattened: {e}") from e
