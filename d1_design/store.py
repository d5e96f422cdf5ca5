"""
D1 Design store

Directory of saved design files, addressed by design reference.
"""

import re
import uuid
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Union

from core.exceptions import NotFoundError, ValidationError
from core.logging import get_logger

from .models import Design
from .persistence import load_design_file, save_design_file

logger = get_logger(__name__, domain="d1_design")

_REF_PATTERN = re.compile(r"^[a-z0-9][a-z0-9-]{0,127}$")


def slugify(name: str) -> str:
    slug = re.sub(r"[^a-z0-9]+", "-", name.lower()).strip("-")
    return slug[:64] or "design"


class DesignStore:
    """Saves and loads designs as ``<ref>.json`` files"""

    def __init__(self, directory: Union[str, Path]):
        self.directory = Path(directory)

    def _path_for(self, design_ref: str) -> Path:
        if not _REF_PATTERN.match(design_ref or ""):
            raise ValidationError(f"Invalid design reference: {design_ref!r}", field="design_ref")
        return self.directory / f"{design_ref}.json"

    def save(self, design: Design) -> str:
        """Persist a design under a new reference"""
        design_ref = f"{slugify(design.name)}-{uuid.uuid4().hex[:12]}"
        save_design_file(design, self._path_for(design_ref))
        logger.info(f"Saved design {design.name} as {design_ref}")
        return design_ref

    def get(self, design_ref: str) -> Design:
        path = self._path_for(design_ref)
        if not path.is_file():
            raise NotFoundError("Design", design_ref)
        return load_design_file(path)

    def exists(self, design_ref: str) -> bool:
        return self._path_for(design_ref).is_file()

    def list(self) -> List[Dict[str, Any]]:
        """Summaries of stored designs, newest first"""
        if not self.directory.is_dir():
            return []

        summaries = []
        for path in self.directory.glob("*.json"):
            try:
                design = load_design_file(path)
                modified = datetime.fromtimestamp(path.stat().st_mtime, tz=timezone.utc)
            except (ValidationError, NotFoundError) as e:
                logger.warning(f"Skipping unreadable design file {path.name}: {e.message}")
                continue
            except OSError as e:
                logger.warning(f"Skipping unreadable design file {path.name}: {e}")
                continue
            summaries.append(
                {
                    "design_ref": path.stem,
                    "name": design.name,
                    "data_sources": [data_source.name for data_source in design.data_sources],
                    "tables": [table.name for table in design.tables()],
                    "updated_at": modified.isoformat(),
                }
            )
        summaries.sort(key=lambda summary: summary["updated_at"], reverse=True)
        return summaries
