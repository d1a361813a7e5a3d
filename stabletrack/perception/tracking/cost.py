from __future__ import annotations

from typing import Sequence

import numpy as np

from stabletrack.perception.tracking.detection import Detection
from stabletrack.perception.tracking.kalman_filter import CHI2INV95, KalmanFilter
from stabletrack.perception.tracking.track import Track


def iou(box: Sequence[float], candidates: np.ndarray) -> np.ndarray:
    """
    Intersection over union between one (y1, x1, y2, x2) box and each row of
    candidates (N x 4, same layout).
    """
    box = np.asarray(box, dtype=np.float64)
    candidates = np.atleast_2d(np.asarray(candidates, dtype=np.float64))

    top = np.maximum(box[0], candidates[:, 0])
    left = np.maximum(box[1], candidates[:, 1])
    bottom = np.minimum(box[2], candidates[:, 2])
    right = np.minimum(box[3], candidates[:, 3])
    inter = np.clip(bottom - top, 0.0, None) * np.clip(right - left, 0.0, None)

    area_box = max(box[2] - box[0], 0.0) * max(box[3] - box[1], 0.0)
    area_cand = np.clip(candidates[:, 2] - candidates[:, 0], 0.0, None) * np.clip(candidates[:, 3] - candidates[:, 1], 0.0, None)
    union = area_box + area_cand - inter
    return np.where(union > 0, inter / np.where(union > 0, union, 1.0), 0.0)


class CostModel:
    """
    Gate-then-blend association cost.

    A (track, detection) pair is infeasible (cost = inf) when the predicted box and
    the detection box do not overlap, when 1 - IoU exceeds max_iou_distance, or,
    with use_mahalanobis_gate, when the squared Mahalanobis distance exceeds the
    chi-square 0.95 quantile. Feasible pairs cost

        appearance_weight * d_appearance + (1 - appearance_weight) * (1 - IoU)

    and pairs above matching_threshold are dropped as well.
    """

    def __init__(
        self,
        kf: KalmanFilter,
        matching_threshold: float = 0.45,
        max_iou_distance: float = 0.9,
        appearance_weight: float = 0.5,
        use_mahalanobis_gate: bool = False,
    ):
        self.kf = kf
        self.matching_threshold = matching_threshold
        self.max_iou_distance = max_iou_distance
        self.appearance_weight = appearance_weight
        self.use_mahalanobis_gate = use_mahalanobis_gate

    def cost_matrix(self, tracks: Sequence[Track], detections: Sequence[Detection]) -> np.ndarray:
        cost = np.full((len(tracks), len(detections)), np.inf)
        if not tracks or not detections:
            return cost

        det_boxes = np.array([d.box for d in detections], dtype=np.float64)
        det_embeddings = np.stack([d.embedding for d in detections])
        det_xyah = np.array([d.to_xyah() for d in detections]) if self.use_mahalanobis_gate else None

        for row, track in enumerate(tracks):
            overlap = iou(track.bbox, det_boxes)
            motion = 1.0 - overlap
            appearance = track.gallery.distances(det_embeddings)
            combined = self.appearance_weight * appearance + (1.0 - self.appearance_weight) * motion

            gated = (overlap <= 0.0) | (motion > self.max_iou_distance)
            if det_xyah is not None:
                gated |= self.kf.gating_distance(track.mean, track.covariance, det_xyah) > CHI2INV95[4]
            gated |= combined > self.matching_threshold

            cost[row] = np.where(gated, np.inf, combined)
        return cost

    def cost(self, track: Track, detection: Detection) -> float:
        return float(self.cost_matrix([track], [detection])[0, 0])
