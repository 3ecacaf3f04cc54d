# This Source Code Form is subject to the terms of the Mozilla Public
# License, v. 2.0. If a copy of the MPL was not distributed with this
# file, You can obtain one at https://mozilla.org/MPL/2.0/.

"""Blank-page padding for booklet printing."""

# Saddle-stitched booklets are printed four pages per folded sheet
DEFAULT_PAGE_MULTIPLE = 4


def pages_to_add(page_count: int, multiple: int = DEFAULT_PAGE_MULTIPLE) -> int:
    """Number of blank pages needed to reach a multiple of *multiple*.

    Args:
        page_count: Current number of pages (>= 0).
        multiple: Required page-count multiple (>= 1).

    Returns:
        Value in ``range(multiple)``; 0 when already conformant,
        including for an empty document.

    Raises:
        ValueError: If either argument is out of range.
    """
    if page_count < 0:
        raise ValueError(f"Page count must not be negative: {page_count}")
    if multiple < 1:
        raise ValueError(f"Page multiple must be at least 1: {multiple}")
    return (multiple - page_count % multiple) % multiple
