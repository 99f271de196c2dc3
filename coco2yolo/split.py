"""Random train/val partition of image ids."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional

import numpy as np

from .errors import ConfigError

TRAIN = "train"
VAL = "val"


@dataclass(frozen=True)
class SplitAssignment:
    train: List[int]
    val: List[int]

    def as_mapping(self) -> Dict[int, str]:
        """Map every image id to the name of its subset."""

        mapping = {img_id: TRAIN for img_id in self.train}
        mapping.update((img_id, VAL) for img_id in self.val)
        return mapping


def validate_ratio(ratio: float) -> float:
    if not 0.0 < ratio < 1.0:
        raise ConfigError(f"train split must be strictly between 0 and 1, got {ratio}")
    return ratio


def split_ids(image_ids: Iterable[int], ratio: float, rng: Optional[np.random.Generator] = None) -> SplitAssignment:
    """Shuffle ``image_ids`` and cut off the first ``round(ratio * N)`` for training.

    ``rng`` makes the permutation reproducible; by default a freshly seeded
    generator is used.
    """

    validate_ratio(ratio)
    rng = np.random.default_rng() if rng is None else rng
    ids = list(image_ids)
    order = rng.permutation(len(ids))
    shuffled = [ids[i] for i in order]
    n_train = int(round(ratio * len(ids)))
    return SplitAssignment(train=shuffled[:n_train], val=shuffled[n_train:])


__all__ = ["TRAIN", "VAL", "SplitAssignment", "validate_ratio", "split_ids"]
