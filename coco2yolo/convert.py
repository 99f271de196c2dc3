"""Convert COCO style annotations into a YOLO dataset.

The pipeline loads every annotation JSON below the input directory, merges
them into one :class:`~coco2yolo.schema.Dataset`, splits the images into
train and val subsets, then copies each image and writes its label file::

    output/
        classes.txt
        images/{train,val}/<image>
        labels/{train,val}/<image stem>.txt

Run ``python -m coco2yolo --help`` for the command-line options.
"""

from __future__ import annotations

import argparse
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional, Sequence

import numpy as np
from tqdm import tqdm
from tqdm.contrib.logging import logging_redirect_tqdm

from .boxes import normalize_many
from .errors import ConfigError, ConversionError, DataError, OutputError
from .loader import load_dataset
from .resolver import ImageResolver, probe_size
from .schema import FORMATS
from .split import VAL, split_ids, validate_ratio
from .writer import (
    OutputLayout,
    copy_image,
    format_label_line,
    write_classes,
    write_data_yaml,
    write_label_file,
)

logger = logging.getLogger(__name__)


@dataclass
class ConvertConfig:
    input: Path
    output: Path
    format: str = "damm"
    train_split: float = 0.8
    yolo_structure: bool = True
    create_classes: bool = True
    create_yaml: bool = False
    seed: Optional[int] = None
    progress: bool = True

    def __post_init__(self) -> None:
        self.input = Path(self.input)
        self.output = Path(self.output)

    def validate(self) -> None:
        """Reject unusable settings before any file is touched."""

        if self.format not in FORMATS:
            raise ConfigError(f"Invalid format {self.format!r}. Use one of: {', '.join(FORMATS)}")
        validate_ratio(self.train_split)
        if not self.input.exists():
            raise ConfigError(f"Input directory does not exist: {self.input}")
        if not self.input.is_dir():
            raise ConfigError(f"Input path is not a directory: {self.input}")

    @classmethod
    def from_args(cls, args: argparse.Namespace) -> "ConvertConfig":
        return cls(
            input=args.input,
            output=args.output,
            format=args.format,
            train_split=args.train_split,
            yolo_structure=args.yolo_structure,
            create_classes=args.create_classes,
            create_yaml=args.create_yaml,
            seed=args.seed,
            progress=not args.no_progress,
        )


@dataclass
class ConversionSummary:
    annotation_files: int = 0
    images_found: int = 0
    images_processed: int = 0
    images_skipped: int = 0
    images_missing: int = 0
    annotations_converted: int = 0
    annotations_dropped: int = 0
    train_images: int = 0
    val_images: int = 0
    num_classes: int = 0

    def lines(self) -> List[str]:
        return [
            f"Processed files: {self.annotation_files}",
            f"Images found: {self.images_found}",
            f"Images processed: {self.images_processed} (train {self.train_images}, val {self.val_images})",
            f"Images skipped: {self.images_skipped}",
            f"Images missing: {self.images_missing}",
            f"Annotations converted: {self.annotations_converted}",
            f"Annotations dropped: {self.annotations_dropped}",
            f"Classes: {self.num_classes}",
        ]


def convert(config: ConvertConfig, rng: Optional[np.random.Generator] = None) -> ConversionSummary:
    """Run one conversion and return its counters.

    Raises:
        ConfigError: invalid settings.
        DataError: malformed annotation file, no images, or no image found on disk.
        OutputError: the output tree cannot be written.
    """

    config.validate()
    input_dir, output_dir = config.input, config.output
    logger.info("Using format: %s", config.format)

    dataset = load_dataset(input_dir, config.format, exclude=output_dir)
    if not dataset.images:
        raise DataError(f"No images found in annotation files under {input_dir}")

    summary = ConversionSummary(annotation_files=dataset.annotation_files, images_found=len(dataset.images))
    grouped = dataset.annotations_by_image()
    class_index = dataset.class_index()
    class_names = dataset.class_names()
    summary.num_classes = len(class_names)

    image_ids = sorted(dataset.images)
    if config.yolo_structure:
        rng = np.random.default_rng(config.seed) if rng is None else rng
        subset_of = split_ids(image_ids, config.train_split, rng).as_mapping()
    else:
        subset_of = {img_id: "" for img_id in image_ids}

    layout = OutputLayout(output_dir, yolo_structure=config.yolo_structure)
    layout.prepare()
    resolver = ImageResolver(input_dir, exclude=output_dir)

    with logging_redirect_tqdm():
        for img_id in tqdm(image_ids, desc="Converting", unit="img", disable=not config.progress):
            img = dataset.images[img_id]
            anns = grouped[img_id]

            if (img.width is not None and img.width <= 0) or (img.height is not None and img.height <= 0):
                logger.warning("Image %d (%s) has invalid size %sx%s; skipped",
                               img_id, img.file_name, img.width, img.height)
                summary.images_skipped += 1
                summary.annotations_dropped += len(anns)
                continue

            source = resolver.resolve(img.file_name)
            if source is None:
                logger.warning("Image %d (%s) not found under %s; skipped", img_id, img.file_name, input_dir)
                summary.images_missing += 1
                summary.annotations_dropped += len(anns)
                continue

            width, height = img.width, img.height
            if width is None or height is None:
                try:
                    width, height = probe_size(source)
                except OSError as exc:
                    logger.warning("Cannot read size of image %d (%s): %s; skipped", img_id, source, exc)
                    summary.images_skipped += 1
                    summary.annotations_dropped += len(anns)
                    continue

            lines = []
            if anns:
                boxes, keep = normalize_many([a.bbox for a in anns], width, height)
                for ann, box, ok in zip(anns, boxes, keep):
                    if not ok:
                        logger.warning("Dropping box %s on image %d (%s): outside %dx%d image or empty",
                                       list(ann.bbox), img_id, img.file_name, width, height)
                        summary.annotations_dropped += 1
                        continue
                    lines.append(format_label_line(class_index[ann.category_id], box.tolist()))

            subset = subset_of[img_id]
            name = layout.claim_name(source, subset, img_id)
            try:
                copy_image(source, layout.image_dir(subset) / name)
                write_label_file(layout.label_dir(subset) / (Path(name).stem + ".txt"), lines)
            except OSError as exc:
                raise OutputError(f"Failed to write output for image {img_id} ({source}): {exc}") from exc
            logger.debug("Generated %s (%d annotations)", name, len(lines))

            summary.images_processed += 1
            summary.annotations_converted += len(lines)
            if subset == VAL:
                summary.val_images += 1
            else:
                summary.train_images += 1

    summary.images_skipped += dataset.images_skipped
    summary.annotations_dropped += dataset.annotations_dropped

    if summary.images_processed == 0:
        raise DataError(f"None of the {summary.images_found} images could be converted")

    try:
        if config.create_classes:
            logger.info("Generated classes file: %s", write_classes(output_dir, class_names))
        if config.create_yaml:
            logger.info("Generated dataset file: %s", write_data_yaml(layout, class_names))
    except OSError as exc:
        raise OutputError(f"Failed to write dataset metadata: {exc}") from exc
    return summary


def str2bool(value: str) -> bool:
    lowered = str(value).strip().lower()
    if lowered in ("true", "yes", "1", "on", "y", "t"):
        return True
    if lowered in ("false", "no", "0", "off", "n", "f"):
        return False
    raise argparse.ArgumentTypeError(f"expected a boolean, got {value!r}")


def parse_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="coco2yolo", description="Convert COCO format annotations to YOLO format"
    )
    parser.add_argument("-i", "--input", type=Path, required=True, help="Input directory containing COCO JSON files")
    parser.add_argument("-o", "--output", type=Path, required=True, help="Output directory for the YOLO dataset")
    parser.add_argument(
        "--format",
        choices=FORMATS,
        default="damm",
        help="'standard' for standard COCO format, 'damm' for DAMM dataset format",
    )
    parser.add_argument("--train-split", type=float, default=0.8, help="Fraction of images assigned to train")
    parser.add_argument(
        "--yolo-structure",
        type=str2bool,
        nargs="?",
        const=True,
        default=True,
        help="Write images/{train,val} and labels/{train,val}; false writes everything flat",
    )
    parser.add_argument(
        "--create-classes", type=str2bool, nargs="?", const=True, default=True, help="Write classes.txt"
    )
    parser.add_argument(
        "--create-yaml", type=str2bool, nargs="?", const=True, default=False, help="Also write data.yaml"
    )
    parser.add_argument("--seed", type=int, default=None, help="Random seed for the train/val split")
    parser.add_argument("--no-progress", action="store_true", help="Disable the progress bar")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    return parser.parse_args(argv)


def main(argv: Sequence[str] | None = None) -> int:
    args = parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(levelname)s %(name)s: %(message)s",
    )
    config = ConvertConfig.from_args(args)
    print("Converting COCO format to YOLO format...")
    print(f"Input directory: {config.input}")
    print(f"Output directory: {config.output}")
    try:
        summary = convert(config)
    except ConversionError as exc:
        logger.error("%s", exc)
        return exc.exit_code
    print("\nConversion completed!")
    for line in summary.lines():
        print(line)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
