"""
Whole-image pixel similarity.

This is a coarse heuristic, not face recognition: the score is the mean
absolute RGB difference between two normalized images, so pose, lighting and
framing changes all raise it.
"""
import logging
from typing import Sequence

import numpy as np

from config import TARGET_SIZE
from errors import DimensionMismatch, NoReferences
from face_engine import normalize
from models import MatchResult, Reference

logger = logging.getLogger(__name__)


def pixel_distance(a: np.ndarray, b: np.ndarray) -> float:
    """Mean |R|+|G|+|B| difference per channel, alpha ignored. Range [0, 255]."""
    if a.shape != b.shape:
        raise DimensionMismatch(a.shape, b.shape)
    rgb_a = a[..., :3].astype(np.int32)
    rgb_b = b[..., :3].astype(np.int32)
    total = int(np.abs(rgb_a - rgb_b).sum(dtype=np.int64))
    return total / (rgb_a.size or 1)


def best_match(probe: np.ndarray, references: Sequence[Reference],
               target_size: int = TARGET_SIZE) -> MatchResult:
    """
    Return the reference nearest to probe.

    Every reference is re-normalized to target_size before comparison. Ties go
    to the earliest reference in store order. The caller applies the threshold.
    """
    if not references:
        raise NoReferences("no references registered")

    distances = [pixel_distance(probe, normalize(ref.image, target_size)) for ref in references]

    # argmin returns the first minimum, which keeps store order on ties
    best_i = int(np.argmin(distances))
    best = MatchResult(name=references[best_i].name, distance=distances[best_i])
    logger.debug("Best match %s (%.2f) among %d references", best.name, best.distance, len(references))
    return best
