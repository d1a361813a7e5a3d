from __future__ import annotations

from dataclasses import dataclass
from typing import List, Sequence, Tuple

import numpy as np

from stabletrack.perception.tracking.errors import DegenerateBoxError, InputShapeError, InvalidDetectionError
from stabletrack.utils.logger import get_logger

logger = get_logger(__name__)


@dataclass
class Detection:
    """
    One observation from the detector/embedder pair.

    box is (y1, x1, y2, x2) in pixels. The embedding is stored L2-normalised.
    """

    box: Tuple[float, float, float, float]
    score: float
    label: str
    embedding: np.ndarray

    def __post_init__(self):
        try:
            box = np.asarray(self.box, dtype=np.float64).reshape(-1)
        except (TypeError, ValueError) as exc:
            raise DegenerateBoxError(f"Box must be numeric, got {self.box!r}") from exc
        if box.shape[0] != 4 or not np.all(np.isfinite(box)):
            raise DegenerateBoxError(f"Box must be 4 finite coordinates, got {self.box!r}")
        y1, x1, y2, x2 = box
        if y2 <= y1 or x2 <= x1:
            raise DegenerateBoxError(f"Zero-area or inverted box {tuple(box.tolist())}")
        self.box = (float(y1), float(x1), float(y2), float(x2))

        try:
            score = float(self.score)
        except (TypeError, ValueError) as exc:
            raise InvalidDetectionError(f"Score must be a number, got {self.score!r}") from exc
        if not 0.0 <= score <= 1.0:
            raise InvalidDetectionError(f"Score {score} outside [0, 1]")
        self.score = score
        self.label = str(self.label)

        try:
            emb = np.asarray(self.embedding, dtype=np.float64).reshape(-1)
        except (TypeError, ValueError) as exc:
            raise InvalidDetectionError("Embedding must be numeric") from exc
        if emb.size == 0 or not np.all(np.isfinite(emb)):
            raise InvalidDetectionError("Embedding must be a non-empty finite vector")
        norm = np.linalg.norm(emb)
        if norm <= 0.0:
            raise InvalidDetectionError("Embedding has zero norm")
        self.embedding = emb / norm

    def to_xyah(self) -> np.ndarray:
        """(center x, center y, aspect ratio w/h, height)"""
        y1, x1, y2, x2 = self.box
        h = y2 - y1
        return np.array([(x1 + x2) / 2.0, (y1 + y2) / 2.0, (x2 - x1) / h, h], dtype=np.float64)

    def to_yxyx(self) -> List[float]:
        return list(self.box)


def detections_from_arrays(
    boxes: Sequence[Sequence[float]],
    embeddings: Sequence[Sequence[float]],
    labels: Sequence[str],
    scores: Sequence[float],
) -> Tuple[List[Detection], List[int]]:
    """
    Build Detection records from the four index-aligned per-frame sequences.

    Raises InputShapeError (before building anything) when the sequences disagree in
    length or the embeddings disagree in dimension. A detection that fails its own
    invariants (degenerate box, bad score, zero embedding) is rejected and skipped;
    its index is returned in the second element.
    """
    lengths = {"boxes": len(boxes), "embeddings": len(embeddings), "labels": len(labels), "scores": len(scores)}
    if len(set(lengths.values())) > 1:
        raise InputShapeError(f"Mismatched detection input lengths: {lengths}")

    dims = {int(np.size(e)) for e in embeddings}
    if len(dims) > 1:
        raise InputShapeError(f"Embeddings have mixed dimensions: {sorted(dims)}")

    detections: List[Detection] = []
    rejected: List[int] = []
    for i, (box, emb, label, score) in enumerate(zip(boxes, embeddings, labels, scores)):
        try:
            detections.append(Detection(box=box, score=score, label=label, embedding=emb))
        except InvalidDetectionError as exc:
            logger.warning("Rejected detection %d: %s", i, exc)
            rejected.append(i)
    return detections, rejected
