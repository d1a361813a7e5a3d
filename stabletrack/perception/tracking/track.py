from __future__ import annotations

from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

import numpy as np

from stabletrack.perception.tracking.detection import Detection
from stabletrack.perception.tracking.gallery import AppearanceGallery
from stabletrack.perception.tracking.kalman_filter import KalmanFilter
from stabletrack.perception.tracking.persistence import decode_array, encode_array


class TrackState(str, Enum):
    TENTATIVE = "tentative"
    CONFIRMED = "confirmed"
    DELETED = "deleted"


class Track:
    """
    A persistent hypothesis about one object.

    Tentative tracks are confirmed after n_init consecutive hits; a tentative track
    missed once is deleted, a confirmed one after more than max_age frames without
    a match.
    """

    def __init__(
        self,
        mean: np.ndarray,
        covariance: np.ndarray,
        track_id: int,
        n_init: int,
        max_age: int,
        label: str = "",
        score: float = 0.0,
        embedding: Optional[np.ndarray] = None,
        gallery_budget: int = 30,
    ):
        self.mean = mean
        self.covariance = covariance
        self.track_id = track_id
        self.label = label
        self.score = score
        self.hits = 1
        self.age = 1
        self.time_since_update = 0
        self.state = TrackState.TENTATIVE

        self.gallery = AppearanceGallery(gallery_budget)
        if embedding is not None:
            self.gallery.add(embedding)

        self._n_init = n_init
        self._max_age = max_age

    def __repr__(self) -> str:
        return f"Track(id={self.track_id}, state={self.state.value}, bbox={[round(v, 1) for v in self.bbox]})"

    @property
    def id(self) -> int:
        return self.track_id

    @property
    def bbox(self) -> List[float]:
        """[y1, x1, y2, x2] derived from the current mean."""
        cx, cy, a, h = self.mean[:4]
        w = a * h
        return [float(cy - h / 2), float(cx - w / 2), float(cy + h / 2), float(cx + w / 2)]

    @property
    def velocity(self) -> Tuple[float, float]:
        return float(self.mean[4]), float(self.mean[5])

    def predict(self, kf: KalmanFilter) -> None:
        # Keep height and aspect from being integrated through zero
        if self.mean[3] + self.mean[7] <= 0:
            self.mean[7] = 0.0
        if self.mean[2] + self.mean[6] <= 0:
            self.mean[6] = 0.0
        self.mean, self.covariance = kf.predict(self.mean, self.covariance)
        self.age += 1
        self.time_since_update += 1

    def update(self, kf: KalmanFilter, detection: Detection) -> None:
        self.mean, self.covariance = kf.update(self.mean, self.covariance, detection.to_xyah())
        self.gallery.add(detection.embedding)
        self.label = detection.label
        self.score = detection.score

        self.hits += 1
        self.time_since_update = 0
        if self.state == TrackState.TENTATIVE and self.hits >= self._n_init:
            self.state = TrackState.CONFIRMED

    def mark_missed(self) -> None:
        self.hits = 0
        if self.state == TrackState.TENTATIVE:
            self.state = TrackState.DELETED
        elif self.time_since_update > self._max_age:
            self.state = TrackState.DELETED

    def is_tentative(self) -> bool:
        return self.state == TrackState.TENTATIVE

    def is_confirmed(self) -> bool:
        return self.state == TrackState.CONFIRMED

    def is_deleted(self) -> bool:
        return self.state == TrackState.DELETED

    def to_dict(self) -> Dict[str, Any]:
        """Read-only render snapshot."""
        return {
            "id": self.track_id,
            "bbox": self.bbox,
            "label": self.label,
            "score": self.score,
            "state": self.state.value,
        }

    def to_state(self) -> Dict[str, Any]:
        return {
            "id": self.track_id,
            "state": self.state.value,
            "mean": encode_array(self.mean),
            "covariance": encode_array(self.covariance),
            "label": self.label,
            "score": self.score,
            "hits": self.hits,
            "age": self.age,
            "time_since_update": self.time_since_update,
            "gallery": self.gallery.to_list(),
        }

    @classmethod
    def from_state(cls, data: Dict[str, Any], n_init: int, max_age: int, gallery_budget: int) -> "Track":
        track = cls(
            mean=decode_array(data["mean"]),
            covariance=decode_array(data["covariance"]),
            track_id=int(data["id"]),
            n_init=n_init,
            max_age=max_age,
            label=data.get("label", ""),
            score=float(data.get("score", 0.0)),
            gallery_budget=gallery_budget,
        )
        for emb in data.get("gallery", []):
            track.gallery.add(np.asarray(emb, dtype=np.float64))
        track.state = TrackState(data["state"])
        track.hits = int(data["hits"])
        track.age = int(data["age"])
        track.time_since_update = int(data["time_since_update"])
        return track
