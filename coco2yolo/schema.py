"""Canonical in-memory dataset and the two input schemas that feed it.

Two annotation layouts are understood:

``standard``
    Plain COCO: top level ``images``, ``annotations`` and (optionally)
    ``categories`` lists, boxes as ``[x, y, width, height]``.

``damm``
    The DAMM export: a top level ``annotations`` list with one entry per
    image, each carrying its own nested ``annotations`` whose ``bbox`` is a
    pair of corners ``[[x1, y1], [x2, y2]]``.  There is no category table.

Both parsers return a :class:`Dataset` holding boxes in COCO
``(x_min, y_min, width, height)`` pixel format, so nothing downstream needs to
know which layout a file used.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Tuple

from .errors import DataError

logger = logging.getLogger(__name__)

FORMATS = ("damm", "standard")

XYXY_ABS = "BoxMode.XYXY_ABS"
XYWH_ABS = "BoxMode.XYWH_ABS"


@dataclass(frozen=True)
class Category:
    id: int
    name: str


@dataclass(frozen=True)
class Image:
    id: int
    file_name: str
    # ``None`` when the record does not state the size; it is then read from
    # the image file itself.
    width: Optional[int] = None
    height: Optional[int] = None


@dataclass(frozen=True)
class Annotation:
    image_id: int
    category_id: int
    bbox: Tuple[float, float, float, float]


@dataclass
class Dataset:
    """Images, categories and annotations gathered from one or more files."""

    images: Dict[int, Image] = field(default_factory=dict)
    categories: Dict[int, Category] = field(default_factory=dict)
    annotations: List[Annotation] = field(default_factory=list)
    images_skipped: int = 0
    annotations_dropped: int = 0
    annotation_files: int = 0

    def merge(self, other: "Dataset", source: str = "") -> None:
        """Fold ``other`` into this dataset.

        Images and categories are keyed by id.  A record whose id is already
        present with different content is logged and ignored together with
        the annotations of the ignored image; other annotations are appended.
        """

        where = f" in {source}" if source else ""
        rejected = set()
        for img in other.images.values():
            known = self.images.get(img.id)
            if known is None:
                self.images[img.id] = img
            elif known != img:
                logger.warning(
                    "Image id %d%s conflicts with an earlier record (%s vs %s); keeping the first",
                    img.id, where, known.file_name, img.file_name,
                )
                self.images_skipped += 1
                rejected.add(img.id)
        for cat in other.categories.values():
            known = self.categories.get(cat.id)
            if known is None:
                self.categories[cat.id] = cat
            elif known != cat:
                logger.warning(
                    "Category id %d%s is named %r but was %r earlier; keeping %r",
                    cat.id, where, cat.name, known.name, known.name,
                )
        for ann in other.annotations:
            if ann.image_id in rejected:
                logger.warning(
                    "Dropping annotation%s on conflicting image id %d (%s)",
                    where, ann.image_id, other.images[ann.image_id].file_name,
                )
                self.annotations_dropped += 1
                continue
            self.annotations.append(ann)
        self.images_skipped += other.images_skipped
        self.annotations_dropped += other.annotations_dropped

    def class_index(self) -> Dict[int, int]:
        """Map original category ids to dense YOLO class ids, ordered by id."""

        return {cid: i for i, cid in enumerate(sorted(self.categories))}

    def class_names(self) -> List[str]:
        return [self.categories[cid].name for cid in sorted(self.categories)]

    def annotations_by_image(self) -> Dict[int, List[Annotation]]:
        """Group annotations per image, dropping those with dangling ids.

        Every known image gets an entry, possibly empty.  Dropped annotations
        are added to :attr:`annotations_dropped`.
        """

        grouped: Dict[int, List[Annotation]] = {img_id: [] for img_id in self.images}
        for ann in self.annotations:
            if ann.image_id not in self.images:
                logger.warning("Annotation references unknown image id %d; skipped", ann.image_id)
                self.annotations_dropped += 1
                continue
            if ann.category_id not in self.categories:
                logger.warning(
                    "Annotation on image %d (%s) references unknown category id %d; skipped",
                    ann.image_id, self.images[ann.image_id].file_name, ann.category_id,
                )
                self.annotations_dropped += 1
                continue
            grouped[ann.image_id].append(ann)
        return grouped


def _require_list(doc: Any, key: str) -> List[Any]:
    if not isinstance(doc, dict):
        raise DataError(f"expected a JSON object at top level, got {type(doc).__name__}")
    if key not in doc:
        raise DataError(f"missing top-level {key!r} list")
    value = doc[key]
    if not isinstance(value, list):
        raise DataError(f"top-level {key!r} must be a list, got {type(value).__name__}")
    return value


def _optional_size(record: Dict[str, Any], key: str) -> Optional[int]:
    value = record.get(key)
    return None if value is None else int(value)


def _synthesize_categories(dataset: Dataset) -> None:
    for ann in dataset.annotations:
        if ann.category_id not in dataset.categories:
            dataset.categories[ann.category_id] = Category(ann.category_id, f"class_{ann.category_id}")


def _damm_bbox(raw: Dict[str, Any]) -> Tuple[float, float, float, float]:
    (a, b), (c, d) = raw["bbox"]
    mode = raw.get("bbox_mode") or XYXY_ABS
    if mode == XYXY_ABS:
        return float(a), float(b), float(c) - float(a), float(d) - float(b)
    if mode == XYWH_ABS:
        return float(a), float(b), float(c), float(d)
    raise ValueError(f"unsupported bbox_mode {mode!r}")


def parse_damm(doc: Any) -> Dataset:
    """Parse a DAMM document into a :class:`Dataset`."""

    dataset = Dataset()
    for entry in _require_list(doc, "annotations"):
        try:
            img = Image(
                id=int(entry["image_id"]),
                file_name=str(entry["file_name"]),
                width=_optional_size(entry, "width"),
                height=_optional_size(entry, "height"),
            )
            nested = entry.get("annotations") or []
        except (KeyError, TypeError, ValueError, AttributeError) as exc:
            logger.warning("Skipping malformed DAMM image entry %r: %s", entry, exc)
            dataset.images_skipped += 1
            continue
        if img.id in dataset.images:
            logger.warning("Duplicate image id %d (%s) in one file; skipped", img.id, img.file_name)
            dataset.images_skipped += 1
            continue
        dataset.images[img.id] = img
        for raw in nested:
            try:
                ann = Annotation(img.id, int(raw["category_id"]), _damm_bbox(raw))
            except (KeyError, TypeError, ValueError) as exc:
                logger.warning("Skipping malformed annotation on image %d (%s): %s", img.id, img.file_name, exc)
                dataset.annotations_dropped += 1
                continue
            dataset.annotations.append(ann)
    _synthesize_categories(dataset)
    return dataset


def parse_standard(doc: Any) -> Dataset:
    """Parse a standard COCO document into a :class:`Dataset`."""

    dataset = Dataset()
    images = _require_list(doc, "images")
    annotations = _require_list(doc, "annotations")

    for raw in images:
        try:
            img = Image(
                id=int(raw["id"]),
                file_name=str(raw["file_name"]),
                width=_optional_size(raw, "width"),
                height=_optional_size(raw, "height"),
            )
        except (KeyError, TypeError, ValueError) as exc:
            logger.warning("Skipping malformed image record %r: %s", raw, exc)
            dataset.images_skipped += 1
            continue
        if img.id in dataset.images:
            logger.warning("Duplicate image id %d (%s) in one file; skipped", img.id, img.file_name)
            dataset.images_skipped += 1
            continue
        dataset.images[img.id] = img

    for raw in annotations:
        try:
            x, y, w, h = (float(v) for v in raw["bbox"])
            ann = Annotation(int(raw["image_id"]), int(raw["category_id"]), (x, y, w, h))
        except (KeyError, TypeError, ValueError) as exc:
            logger.warning("Skipping malformed annotation %r: %s", raw.get("id") if isinstance(raw, dict) else raw, exc)
            dataset.annotations_dropped += 1
            continue
        dataset.annotations.append(ann)

    if doc.get("categories") is None:
        _synthesize_categories(dataset)
    else:
        for raw in _require_list(doc, "categories"):
            try:
                cat = Category(int(raw["id"]), str(raw.get("name", f"class_{raw['id']}")))
            except (KeyError, TypeError, ValueError) as exc:
                logger.warning("Skipping malformed category %r: %s", raw, exc)
                continue
            dataset.categories.setdefault(cat.id, cat)
    return dataset


PARSERS: Dict[str, Callable[[Any], Dataset]] = {
    "damm": parse_damm,
    "standard": parse_standard,
}


def parse_document(doc: Any, fmt: str) -> Dataset:
    try:
        parser = PARSERS[fmt]
    except KeyError:
        raise ValueError(f"unknown format {fmt!r}, expected one of {', '.join(FORMATS)}") from None
    return parser(doc)


__all__ = [
    "FORMATS",
    "Category",
    "Image",
    "Annotation",
    "Dataset",
    "parse_damm",
    "parse_standard",
    "parse_document",
]
