# This Source Code Form is subject to the terms of the Mozilla Public
# License, v. 2.0. If a copy of the MPL was not distributed with this
# file, You can obtain one at https://mozilla.org/MPL/2.0/.

"""Pytest fixtures for the pdftoa5 test suite."""

from collections.abc import Generator
from io import BytesIO
from pathlib import Path

import pikepdf
import pytest
from pikepdf import Array, Dictionary, Name, Pdf

A4_PORTRAIT = (595.28, 841.89)
A4_LANDSCAPE = (841.89, 595.28)
LETTER_PORTRAIT = (612, 792)

# -- Global PDF tracker --

_tracked_pdfs: list[Pdf] = []


@pytest.fixture(autouse=True)
def _auto_close_pdfs():
    """Close all tracked PDF objects after each test."""
    yield
    for pdf in reversed(_tracked_pdfs):
        try:
            pdf.close()
        except Exception:
            pass
    _tracked_pdfs.clear()


def new_pdf(**kwargs) -> Pdf:
    """Create a tracked Pdf (auto-closed after test)."""
    pdf = Pdf.new(**kwargs)
    _tracked_pdfs.append(pdf)
    return pdf


def open_pdf(source, **kwargs) -> Pdf:
    """Open a tracked Pdf (auto-closed after test)."""
    if isinstance(source, (bytes, bytearray)):
        source = BytesIO(source)
    pdf = Pdf.open(source, **kwargs)
    _tracked_pdfs.append(pdf)
    return pdf


def marker(index: int) -> bytes:
    """Text drawn on marked page *index*."""
    return f"(Marker {index})".encode("ascii")


def add_marked_page(pdf: Pdf, index: int, size=A4_PORTRAIT, **extra) -> pikepdf.Page:
    """Append a page whose content shows ``Marker <index>``."""
    font = Dictionary(Type=Name.Font, Subtype=Name.Type1, BaseFont=Name.Helvetica)
    page_dict = Dictionary(
        Type=Name.Page,
        MediaBox=Array([0, 0, size[0], size[1]]),
        Resources=Dictionary(Font=Dictionary(F1=font)),
        **extra,
    )
    content = b"BT /F1 24 Tf 72 72 Td " + marker(index) + b" Tj ET"
    page_dict[Name.Contents] = pdf.make_stream(content)
    pdf.pages.append(pikepdf.Page(page_dict))
    return pdf.pages[-1]


def make_marked_pdf(sizes) -> Pdf:
    """Create a tracked PDF with one marked page per entry in *sizes*."""
    pdf = new_pdf()
    for index, size in enumerate(sizes):
        add_marked_page(pdf, index, size)
    return pdf


def add_corrupt_page(pdf: Pdf, size=A4_PORTRAIT) -> None:
    """Append a page whose FlateDecode content stream is not deflate data."""
    stream = pdf.make_stream(b"")
    stream.write(b"this is definitely not deflate data", filter=Name.FlateDecode)
    page_dict = Dictionary(
        Type=Name.Page,
        MediaBox=Array([0, 0, size[0], size[1]]),
        Resources=Dictionary(),
        Contents=stream,
    )
    pdf.pages.append(pikepdf.Page(page_dict))


def to_bytes(pdf: Pdf) -> bytes:
    """Save a PDF to bytes without touching stream data."""
    buffer = BytesIO()
    pdf.save(
        buffer,
        compress_streams=False,
        stream_decode_level=pikepdf.StreamDecodeLevel.none,
    )
    return buffer.getvalue()


def page_content(page) -> bytes:
    """Concatenated content of a page ('' when it has none)."""
    contents = page.obj.get("/Contents")
    if contents is None:
        return b""
    if isinstance(contents, Array):
        return b"\n".join(s.read_bytes() for s in contents)
    return contents.read_bytes()


def page_xobjects(page) -> list:
    """XObjects in a page's resources."""
    resources = page.obj.get("/Resources")
    if resources is None or "/XObject" not in resources:
        return []
    xobjects = resources.XObject
    return [xobjects[key] for key in xobjects.keys()]


def is_blank(page) -> bool:
    """True if the page draws nothing."""
    return page_content(page).strip() == b"" and not page_xobjects(page)


def make_form_pdf(widget: Dictionary | None = None) -> Pdf:
    """PDF with one marked page and an AcroForm text field widget."""
    pdf = make_marked_pdf([A4_PORTRAIT])
    appearance = pdf.make_stream(b"BT /Helv 10 Tf 2 5 Td (Filled) Tj ET")
    appearance[Name.Type] = Name.XObject
    appearance[Name.Subtype] = Name.Form
    appearance[Name.BBox] = Array([0, 0, 100, 20])

    if widget is None:
        widget = Dictionary(
            Type=Name.Annot,
            Subtype=Name.Widget,
            FT=Name.Tx,
            T=pikepdf.String("name"),
            V=pikepdf.String("Filled"),
            Rect=Array([100, 700, 200, 720]),
            F=4,
            AP=Dictionary(N=appearance),
        )
    widget = pdf.make_indirect(widget)
    widget[Name.P] = pdf.pages[0].obj
    pdf.pages[0].Annots = Array([widget])
    pdf.Root["/AcroForm"] = pdf.make_indirect(Dictionary(Fields=Array([widget])))
    return pdf


def add_default_font(pdf: Pdf, name: str = "/Helv") -> Dictionary:
    """Define a Helvetica font under *name* in the AcroForm /DR."""
    font = pdf.make_indirect(
        Dictionary(Type=Name.Font, Subtype=Name.Type1, BaseFont=Name.Helvetica)
    )
    pdf.Root.AcroForm.DR = Dictionary(Font=Dictionary({name: font}))
    return font


def add_xfa(pdf: Pdf) -> None:
    """Attach an XFA packet to the document's AcroForm."""
    pdf.Root["/AcroForm"] = pdf.make_indirect(
        Dictionary(
            Fields=Array([]),
            XFA=pdf.make_stream(b"<xdp:xdp><template/></xdp:xdp>"),
        )
    )


# -- Fixtures --


@pytest.fixture
def tmp_dir(tmp_path: Path) -> Path:
    """Temporary directory for tests."""
    return tmp_path


@pytest.fixture
def sample_pdf_bytes() -> bytes:
    """Three marked pages: A4 portrait, A4 landscape, Letter."""
    return to_bytes(make_marked_pdf([A4_PORTRAIT, A4_LANDSCAPE, LETTER_PORTRAIT]))


@pytest.fixture
def sample_pdf(tmp_dir: Path, sample_pdf_bytes: bytes) -> Path:
    """Three marked pages on disk."""
    pdf_path = tmp_dir / "sample.pdf"
    pdf_path.write_bytes(sample_pdf_bytes)
    return pdf_path


@pytest.fixture
def sample_pdf_obj(sample_pdf_bytes: bytes) -> Generator[Pdf, None, None]:
    """Open pikepdf.Pdf object with three marked pages."""
    pdf = Pdf.open(BytesIO(sample_pdf_bytes))
    yield pdf
    pdf.close()


@pytest.fixture
def empty_pdf_bytes() -> bytes:
    """PDF without pages."""
    return to_bytes(new_pdf())


@pytest.fixture
def contentless_pdf_bytes() -> bytes:
    """One page without a /Contents entry."""
    pdf = new_pdf()
    page = pikepdf.Page(Dictionary(Type=Name.Page, MediaBox=Array([0, 0, 612, 792])))
    pdf.pages.append(page)
    return to_bytes(pdf)


@pytest.fixture
def corrupt_pdf_bytes() -> bytes:
    """Five pages; page index 2 has a corrupt content stream."""
    pdf = new_pdf()
    for index in range(5):
        if index == 2:
            add_corrupt_page(pdf)
        else:
            add_marked_page(pdf, index)
    return to_bytes(pdf)


@pytest.fixture
def xfa_pdf_bytes() -> bytes:
    """One marked page with an XFA form."""
    pdf = make_marked_pdf([A4_PORTRAIT])
    add_xfa(pdf)
    return to_bytes(pdf)


@pytest.fixture
def form_pdf_bytes() -> bytes:
    """One marked page with a filled AcroForm text field."""
    return to_bytes(make_form_pdf())


@pytest.fixture
def encrypted_pdf_bytes() -> bytes:
    """Owner-password-only encryption (opens without a password)."""
    pdf = make_marked_pdf([A4_PORTRAIT])
    buffer = BytesIO()
    pdf.save(buffer, encryption=pikepdf.Encryption(owner="ownerpass"))
    return buffer.getvalue()


@pytest.fixture
def protected_pdf_bytes() -> bytes:
    """Encryption with a user password (cannot open without it)."""
    pdf = make_marked_pdf([A4_PORTRAIT])
    buffer = BytesIO()
    pdf.save(
        buffer,
        encryption=pikepdf.Encryption(owner="ownerpass", user="userpass"),
    )
    return buffer.getvalue()
