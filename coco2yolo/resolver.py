"""Locate image files referenced by annotation records."""

from __future__ import annotations

import logging
from collections import defaultdict
from pathlib import Path, PurePosixPath
from typing import Dict, List, Optional, Tuple

from PIL import Image as PILImage

logger = logging.getLogger(__name__)

IGNORED_SUFFIXES = {".json", ".txt", ".yaml", ".yml"}


class ImageResolver:
    """Find image files below ``root`` by relative path or by base name.

    The base-name index is built on first use from a lexicographic walk of
    ``root``; when a name matches several files the first one wins.
    """

    def __init__(self, root: str | Path, exclude: str | Path | None = None) -> None:
        self.root = Path(root)
        self.exclude = Path(exclude).resolve() if exclude is not None else None
        self._index: Optional[Dict[str, List[Path]]] = None

    def _excluded(self, path: Path) -> bool:
        if self.exclude is None:
            return False
        try:
            path.resolve().relative_to(self.exclude)
        except ValueError:
            return False
        return True

    @property
    def index(self) -> Dict[str, List[Path]]:
        if self._index is None:
            index: Dict[str, List[Path]] = defaultdict(list)
            files = sorted(
                (p for p in self.root.rglob("*") if p.is_file()),
                key=lambda p: p.relative_to(self.root).as_posix(),
            )
            for path in files:
                if path.suffix.lower() in IGNORED_SUFFIXES or self._excluded(path):
                    continue
                index[path.name].append(path)
            self._index = dict(index)
            logger.debug("Indexed %d candidate image files under %s", len(files), self.root)
        return self._index

    def resolve(self, file_name: str) -> Optional[Path]:
        """Return the file for ``file_name`` or ``None`` when it cannot be found."""

        name = PurePosixPath(file_name.replace("\\", "/"))
        if len(name.parts) > 1:
            direct = Path(name) if name.is_absolute() else self.root / name
            if direct.is_file():
                return direct
        candidates = self.index.get(name.name, [])
        if not candidates:
            return None
        if len(candidates) > 1:
            logger.warning(
                "%d files named %s under %s; using %s",
                len(candidates), name.name, self.root, candidates[0],
            )
        return candidates[0]


def probe_size(path: str | Path) -> Tuple[int, int]:
    """Read ``(width, height)`` from the image header without decoding pixels."""

    with PILImage.open(path) as img:
        return img.size


__all__ = ["ImageResolver", "probe_size"]
