from __future__ import annotations

from dataclasses import asdict, dataclass, fields, replace
from typing import Any, Dict, List, Mapping, Optional, Sequence

from stabletrack.perception.tracking.assignment import METHODS
from stabletrack.perception.tracking.cost import CostModel
from stabletrack.perception.tracking.detection import Detection, detections_from_arrays
from stabletrack.perception.tracking.errors import InputShapeError
from stabletrack.perception.tracking.kalman_filter import KalmanFilter
from stabletrack.perception.tracking.lifecycle import TrackLifecycleManager
from stabletrack.perception.tracking.track import Track
from stabletrack.utils.logger import get_logger

logger = get_logger(__name__)

SNAPSHOT_VERSION = 1


@dataclass
class TrackerConfig:
    max_age: int = 60  # frames without a match before a confirmed track is dropped
    matching_threshold: float = 0.45  # combined cost above this is never matched
    n_init: int = 3
    max_iou_distance: float = 0.9
    appearance_weight: float = 0.5  # 0 = motion only, 1 = appearance only
    gallery_budget: int = 30
    use_mahalanobis_gate: bool = False
    assignment: str = "hungarian"

    def __post_init__(self):
        if self.max_age < 0:
            raise ValueError("max_age must be >= 0")
        if self.n_init < 1:
            raise ValueError("n_init must be >= 1")
        if self.matching_threshold <= 0:
            raise ValueError("matching_threshold must be > 0")
        if not 0.0 < self.max_iou_distance <= 1.0:
            raise ValueError("max_iou_distance must be in (0, 1]")
        if not 0.0 <= self.appearance_weight <= 1.0:
            raise ValueError("appearance_weight must be in [0, 1]")
        if self.gallery_budget < 1:
            raise ValueError("gallery_budget must be >= 1")
        if self.assignment not in METHODS:
            raise ValueError(f"assignment must be one of {METHODS}")

    @classmethod
    def from_dict(cls, data: Optional[Mapping[str, Any]]) -> "TrackerConfig":
        data = dict(data or {})
        known = {f.name for f in fields(cls)}
        unknown = sorted(set(data) - known)
        if unknown:
            raise ValueError(f"Unknown tracker config keys: {unknown}")
        return cls(**data)


class DeepSORTTracker:
    """
    Appearance-aware multi-object tracker (DeepSORT style).

    Call update() on frames where the detector ran and predict_only() on the frames
    in between. Both return the live tracks in id order; treat them as read-only.
    """

    def __init__(self, cfg: TrackerConfig | None = None, **overrides):
        cfg = cfg or TrackerConfig()
        self.cfg = replace(cfg, **overrides) if overrides else cfg
        self.kf = KalmanFilter()
        self.cost_model = CostModel(
            self.kf,
            matching_threshold=self.cfg.matching_threshold,
            max_iou_distance=self.cfg.max_iou_distance,
            appearance_weight=self.cfg.appearance_weight,
            use_mahalanobis_gate=self.cfg.use_mahalanobis_gate,
        )
        self.manager = TrackLifecycleManager(
            self.kf,
            self.cost_model,
            n_init=self.cfg.n_init,
            max_age=self.cfg.max_age,
            gallery_budget=self.cfg.gallery_budget,
            assignment=self.cfg.assignment,
        )
        self.embedding_dim: Optional[int] = None
        self.frame_count = 0

    @property
    def tracks(self) -> List[Track]:
        return self.manager.tracks

    def confirmed_tracks(self) -> List[Track]:
        return [t for t in self.manager.tracks if t.is_confirmed()]

    def update(
        self,
        boxes: Sequence[Sequence[float]],
        embeddings: Sequence[Sequence[float]],
        labels: Sequence[str],
        scores: Sequence[float],
    ) -> List[Track]:
        """
        Run one detection cycle.

        boxes are (y1, x1, y2, x2); index i of all four sequences describes one
        detection. Mismatched lengths or embedding dimensions raise InputShapeError
        before any track is touched. Degenerate boxes are skipped.
        """
        detections, rejected = detections_from_arrays(boxes, embeddings, labels, scores)
        if rejected:
            logger.info("Skipped %d of %d detections with invalid geometry or values", len(rejected), len(boxes))
        return self.update_detections(detections)

    def update_detections(self, detections: Sequence[Detection]) -> List[Track]:
        self._check_embedding_dim(detections)
        self.frame_count += 1
        tracks = self.manager.step(detections)
        logger.debug(
            "Cycle %d: %d detections -> %d live tracks (%d confirmed)",
            self.frame_count,
            len(detections),
            len(tracks),
            sum(1 for t in tracks if t.is_confirmed()),
        )
        return tracks

    def predict_only(self) -> List[Track]:
        """Advance every live track by one frame without new evidence."""
        self.frame_count += 1
        return self.manager.advance()

    def _check_embedding_dim(self, detections: Sequence[Detection]) -> None:
        dims = {d.embedding.shape[0] for d in detections}
        if self.embedding_dim is not None:
            dims.add(self.embedding_dim)
        if len(dims) > 1:
            raise InputShapeError(f"Embedding dimension mismatch: {sorted(dims)}")
        if dims and self.embedding_dim is None:
            self.embedding_dim = dims.pop()

    def snapshot(self) -> Dict[str, Any]:
        """JSON-compatible state of the whole tracker."""
        return {
            "version": SNAPSHOT_VERSION,
            "config": asdict(self.cfg),
            "next_id": self.manager.next_id,
            "frame_count": self.frame_count,
            "embedding_dim": self.embedding_dim,
            "tracks": [t.to_state() for t in self.manager.tracks],
        }

    @classmethod
    def from_snapshot(cls, data: Mapping[str, Any]) -> "DeepSORTTracker":
        version = data.get("version")
        if version != SNAPSHOT_VERSION:
            raise ValueError(f"Unsupported snapshot version: {version!r}")
        tracker = cls(TrackerConfig.from_dict(data["config"]))
        cfg = tracker.cfg
        for state in sorted(data["tracks"], key=lambda s: int(s["id"])):
            tracker.manager.adopt(Track.from_state(state, cfg.n_init, cfg.max_age, cfg.gallery_budget))
        tracker.manager.next_id = int(data["next_id"])
        tracker.frame_count = int(data.get("frame_count", 0))
        dim = data.get("embedding_dim")
        tracker.embedding_dim = int(dim) if dim is not None else None
        return tracker
