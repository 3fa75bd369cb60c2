from __future__ import annotations

from archive.descriptor import UploadDescriptor
from archive.exceptions import InvalidDescriptorError


KEY_ROOT = "uploads"
ANSWERS_SUFFIX = "_answers"
EXTENSION = ".pdf"


def object_key(descriptor: UploadDescriptor) -> str:
    """Return the canonical archive key for ``descriptor``.

    Documents with an exam date are filed by course without the academic year,
    e.g. ``uploads/computer-science/CS1010/exam_2024-01-15_answers.pdf``.
    """
    stem = descriptor.type.value
    if descriptor.exam_date is not None:
        folder = f"{KEY_ROOT}/{descriptor.study.value}/{descriptor.code}"
        stem = f"{stem}_{descriptor.exam_date.isoformat()}"
    elif descriptor.year is None:
        raise InvalidDescriptorError(
            "either an academic year or an exam date is required", {"year": "missing"}
        )
    else:
        folder = f"{KEY_ROOT}/{descriptor.study.value}/{descriptor.year.value}/{descriptor.code}"
    if descriptor.answers:
        stem += ANSWERS_SUFFIX
    return f"{folder}/{stem}{EXTENSION}"


__all__ = ["object_key", "KEY_ROOT", "ANSWERS_SUFFIX", "EXTENSION"]
