import json
from pathlib import Path

import numpy as np
import pytest
from PIL import Image


def save_image(path: Path, width: int, height: int) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    arr = (np.random.rand(height, width, 3) * 255).astype("uint8")
    Image.fromarray(arr).save(path)
    return path


def write_json(path: Path, doc) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(doc), encoding="utf-8")
    return path


@pytest.fixture
def standard_doc():
    return {
        "images": [
            {"id": 1, "file_name": "img001.jpg", "width": 800, "height": 600},
            {"id": 2, "file_name": "img002.jpg", "width": 640, "height": 480},
        ],
        "categories": [
            {"id": 3, "name": "mouse"},
            {"id": 1, "name": "cage"},
        ],
        "annotations": [
            {"id": 10, "image_id": 1, "category_id": 3, "bbox": [100, 50, 200, 150], "area": 30000, "iscrowd": 0},
        ],
    }


@pytest.fixture
def damm_doc():
    return {
        "annotations": [
            {
                "file_name": "frames/a.jpg",
                "width": 100,
                "height": 50,
                "image_id": 7,
                "annotations": [
                    {"bbox": [[10, 5], [30, 25]], "category_id": 0, "bbox_mode": "BoxMode.XYXY_ABS"},
                    {"bbox": [[0, 0], [100, 50]], "category_id": 2},
                ],
            },
            {"file_name": "frames/b.jpg", "width": 100, "height": 50, "image_id": 8, "annotations": []},
        ]
    }
