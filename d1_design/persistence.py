"""
D1 Design persistence

JSON design file format. A document wraps the design in a small envelope:

    {"format": "reportrunner-design", "version": 1, "design": {...}}

``load_design(serialize_design(d)) == d`` holds for every design.
"""

import json
import os
import tempfile
from pathlib import Path
from typing import Union

from pydantic import ValidationError as PydanticValidationError

from core.exceptions import NotFoundError, ValidationError

from .models import Design

DESIGN_FORMAT = "reportrunner-design"
DESIGN_FORMAT_VERSION = 1


def serialize_design(design: Design, indent: int = 2) -> str:
    """Serialize a design to its JSON document"""
    document = {
        "format": DESIGN_FORMAT,
        "version": DESIGN_FORMAT_VERSION,
        "design": design.model_dump(mode="json"),
    }
    return json.dumps(document, indent=indent, ensure_ascii=False)


def design_from_dict(data: dict) -> Design:
    """Validate a plain design mapping (the ``design`` member of a document)"""
    try:
        return Design.model_validate(data)
    except PydanticValidationError as e:
        first = e.errors()[0]
        field = ".".join(str(part) for part in first.get("loc", ()))
        raise ValidationError(
            f"Invalid design: {first.get('msg')}",
            field=field or None,
            error_count=e.error_count(),
        ) from e


def load_design(text: Union[str, bytes]) -> Design:
    """Parse a JSON design document"""
    try:
        document = json.loads(text)
    except json.JSONDecodeError as e:
        raise ValidationError(f"Design document is not valid JSON: {e.msg}", line=e.lineno) from e
    except UnicodeDecodeError as e:
        raise ValidationError(f"Design document is not valid UTF-8: {e.reason}", position=e.start) from e

    if not isinstance(document, dict) or document.get("format") != DESIGN_FORMAT:
        raise ValidationError("Not a design document", field="format")
    version = document.get("version")
    if version != DESIGN_FORMAT_VERSION:
        raise ValidationError(f"Unsupported design format version: {version}", field="version")
    if not isinstance(document.get("design"), dict):
        raise ValidationError("Design document has no design", field="design")

    return design_from_dict(document["design"])


def save_design_file(design: Design, path: Union[str, Path]) -> Path:
    """Write a design file atomically"""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)

    fd, temp_name = tempfile.mkstemp(prefix=f".{path.name}.", suffix=".tmp", dir=path.parent)
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as handle:
            handle.write(serialize_design(design))
            handle.flush()
            os.fsync(handle.fileno())
        os.replace(temp_name, path)
    except BaseException:
        if os.path.exists(temp_name):
            os.unlink(temp_name)
        raise
    return path


def load_design_file(path: Union[str, Path]) -> Design:
    """Read a design file"""
    path = Path(path)
    if not path.is_file():
        raise NotFoundError("Design file", path)
    try:
        content = path.read_bytes()
    except OSError as e:
        raise ValidationError(f"Design file could not be read: {e.strerror or e}", field="path") from e
    return load_design(content)
