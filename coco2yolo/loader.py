"""Discovery and loading of annotation JSON files."""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import List, Optional

from .errors import DataError
from .schema import Dataset, parse_document

logger = logging.getLogger(__name__)


def _is_within(path: Path, parent: Optional[Path]) -> bool:
    if parent is None:
        return False
    try:
        path.resolve().relative_to(parent.resolve())
    except ValueError:
        return False
    return True


def find_annotation_files(root: str | Path, exclude: str | Path | None = None) -> List[Path]:
    """Return every ``*.json`` file below ``root`` in lexicographic order.

    Files under ``exclude`` (typically the output directory when it sits
    inside the input tree) are ignored.
    """

    root = Path(root)
    exclude = Path(exclude) if exclude is not None else None
    return sorted(p for p in root.rglob("*.json") if p.is_file() and not _is_within(p, exclude))


def load_file(path: str | Path, fmt: str) -> Dataset:
    """Parse one annotation file, raising :class:`DataError` on bad content."""

    path = Path(path)
    try:
        with open(path, encoding="utf-8-sig") as f:
            doc = json.load(f)
    except json.JSONDecodeError as exc:
        raise DataError(f"Malformed JSON in {path}: {exc}") from exc
    except (OSError, UnicodeDecodeError) as exc:
        raise DataError(f"Failed to read {path}: {exc}") from exc
    try:
        return parse_document(doc, fmt)
    except DataError as exc:
        raise DataError(f"Failed to parse {path} as {fmt} format: {exc}") from exc


def load_dataset(root: str | Path, fmt: str, exclude: str | Path | None = None) -> Dataset:
    """Load and merge all annotation files below ``root``.

    A malformed file aborts the whole load.  Files without any annotation are
    skipped with a warning.
    """

    merged = Dataset()
    files = find_annotation_files(root, exclude)
    logger.info("Found %d annotation file(s) under %s", len(files), root)
    for path in files:
        logger.info("Processing: %s", path)
        part = load_file(path, fmt)
        if not part.annotations:
            logger.warning("%s contains no annotations; skipped", path)
            continue
        logger.debug("%s: %d images, %d annotations", path, len(part.images), len(part.annotations))
        merged.merge(part, source=str(path))
        merged.annotation_files += 1
    return merged


__all__ = ["find_annotation_files", "load_file", "load_dataset"]
