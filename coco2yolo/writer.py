"""Output directory layout and the files written into it."""

from __future__ import annotations

import hashlib
import logging
import os
import shutil
from pathlib import Path
from typing import Dict, Iterable, List, Sequence, Set

import yaml

from .errors import OutputError
from .split import TRAIN, VAL

logger = logging.getLogger(__name__)


class OutputLayout:
    """Paths of the YOLO dataset tree.

    With ``yolo_structure`` the tree is ``images/{train,val}`` plus
    ``labels/{train,val}``; otherwise images and labels go straight into
    ``root``.
    """

    def __init__(self, root: str | Path, yolo_structure: bool = True) -> None:
        self.root = Path(root)
        self.yolo_structure = yolo_structure
        self._taken: Dict[Path, Set[str]] = {}
        if not yolo_structure:
            # classes.txt shares the flat directory with the label files.
            self._taken[self.root] = {"classes"}

    @property
    def subsets(self) -> List[str]:
        return [TRAIN, VAL] if self.yolo_structure else [""]

    def image_dir(self, subset: str = "") -> Path:
        return self.root / "images" / subset if self.yolo_structure else self.root

    def label_dir(self, subset: str = "") -> Path:
        return self.root / "labels" / subset if self.yolo_structure else self.root

    def prepare(self) -> None:
        """Create all output directories, raising :class:`OutputError` on failure."""

        dirs = {self.root}
        for subset in self.subsets:
            dirs.add(self.image_dir(subset))
            dirs.add(self.label_dir(subset))
        try:
            for d in sorted(dirs):
                d.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise OutputError(f"Failed to create output directory: {exc}") from exc
        if not os.access(self.root, os.W_OK):
            raise OutputError(f"Output directory is not writable: {self.root}")

    def claim_name(self, source: Path, subset: str = "", image_id: int | None = None) -> str:
        """Reserve a unique image file name for ``source`` in ``subset``.

        The original name is kept when its stem is still free.  Otherwise a
        short hash of the source path (and, if needed, the image id) is
        appended to the stem.  Stems are tracked rather than full names so
        that label files never clash either.
        """

        taken = self._taken.setdefault(self.image_dir(subset), set())
        name = disambiguate(source, taken, image_id)
        if name != source.name:
            logger.warning("Output name %s already used in %s; writing %s as %s",
                           source.name, self.image_dir(subset), source, name)
        taken.add(Path(name).stem)
        return name


def disambiguate(source: Path, taken_stems: Set[str], image_id: int | None = None) -> str:
    stem, suffix = source.stem, source.suffix
    if stem not in taken_stems:
        return source.name
    digest = hashlib.sha1(source.as_posix().encode("utf-8")).hexdigest()[:8]
    candidate = f"{stem}_{digest}"
    if candidate in taken_stems and image_id is not None:
        candidate = f"{candidate}_{image_id}"
    n = 1
    base = candidate
    while candidate in taken_stems:
        candidate = f"{base}_{n}"
        n += 1
    return candidate + suffix


def format_label_line(class_id: int, box: Sequence[float]) -> str:
    xc, yc, w, h = box
    return f"{class_id} {xc:.6f} {yc:.6f} {w:.6f} {h:.6f}"


def write_label_file(path: Path, lines: Iterable[str]) -> None:
    """Write label lines, newline terminated.  No lines gives an empty file."""

    text = "".join(f"{line}\n" for line in lines)
    path.write_text(text, encoding="utf-8", newline="\n")


def copy_image(source: Path, dest: Path) -> None:
    shutil.copy2(source, dest)


def write_classes(root: Path, names: Sequence[str]) -> Path:
    path = Path(root) / "classes.txt"
    path.write_text("".join(f"{name}\n" for name in names), encoding="utf-8", newline="\n")
    return path


def write_data_yaml(layout: OutputLayout, names: Sequence[str]) -> Path:
    """Write an Ultralytics style ``data.yaml`` next to the dataset."""

    root = layout.root
    if layout.yolo_structure:
        train = layout.image_dir(TRAIN).relative_to(root).as_posix()
        val = layout.image_dir(VAL).relative_to(root).as_posix()
    else:
        train = val = "."
    data = {
        "path": str(root.resolve()),
        "train": train,
        "val": val,
        "nc": len(names),
        "names": list(names),
    }
    path = root / "data.yaml"
    with open(path, "w", encoding="utf-8") as f:
        yaml.safe_dump(data, f, sort_keys=False, allow_unicode=True)
    return path


__all__ = [
    "OutputLayout",
    "disambiguate",
    "format_label_line",
    "write_label_file",
    "copy_image",
    "write_classes",
    "write_data_yaml",
]
