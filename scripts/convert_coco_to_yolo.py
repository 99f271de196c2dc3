"""Command-line entry point for converting COCO annotations to a YOLO dataset.

Example::

    python scripts/convert_coco_to_yolo.py -i data/coco -o data/yolo --format standard --seed 0
"""

import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
sys.path.append(str(ROOT))

from coco2yolo.convert import main  # noqa: E402


if __name__ == "__main__":
    raise SystemExit(main())
