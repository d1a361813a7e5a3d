from __future__ import annotations

import logging
from typing import Any, Optional

from stabletrack.perception.base import BaseDetector, BaseEmbedder
from stabletrack.perception.tracking.deepsort_tracker import DeepSORTTracker
from stabletrack.perception.tracking.errors import TrackingError
from stabletrack.utils.logger import get_logger
from stabletrack.utils.types import FrameResult


class Orchestrator:
    """
    Per-frame control loop.

    The detector and embedder run on every detect_every-th frame and feed
    tracker.update(); the frames in between only advance track motion with
    tracker.predict_only(). A detection cycle the tracker rejects is logged and
    degraded to a predict-only frame so a live session never stops.
    """

    def __init__(
        self,
        tracker: DeepSORTTracker,
        detector: BaseDetector,
        embedder: BaseEmbedder,
        detect_every: int = 3,
        logger: Optional[logging.Logger] = None,
    ):
        if detect_every < 1:
            raise ValueError("detect_every must be >= 1")
        self.tracker = tracker
        self.detector = detector
        self.embedder = embedder
        self.detect_every = detect_every
        self.logger = logger or get_logger(__name__)
        self._frame_phase = 0

    def is_detection_frame(self) -> bool:
        return self._frame_phase == 0

    def process_frame(self, frame_id: int, frame: Any) -> FrameResult:
        self._frame_phase = (self._frame_phase + 1) % self.detect_every

        if not self.is_detection_frame():
            tracks = self.tracker.predict_only()
            return FrameResult(frame_id=frame_id, detection_frame=False, tracks=[t.to_dict() for t in tracks])

        dets = self.detector.infer(frame)
        # every embedding for this cycle is ready before the tracker sees the detections
        embeddings = self.embedder.embed(frame, dets.boxes) if len(dets) else []
        try:
            tracks = self.tracker.update(dets.boxes, embeddings, dets.labels, dets.scores)
        except TrackingError as exc:
            self.logger.warning("Frame %d: detection cycle rejected (%s); predicting only", frame_id, exc)
            tracks = self.tracker.predict_only()
            return FrameResult(
                frame_id=frame_id,
                detection_frame=True,
                num_detections=len(dets),
                tracks=[t.to_dict() for t in tracks],
                rejected=True,
            )

        if frame_id % 30 == 0:
            self.logger.info(
                "[TRACK] frame=%d detections=%d live=%d confirmed=%d",
                frame_id,
                len(dets),
                len(tracks),
                sum(1 for t in tracks if t.is_confirmed()),
            )
        return FrameResult(
            frame_id=frame_id,
            detection_frame=True,
            num_detections=len(dets),
            tracks=[t.to_dict() for t in tracks],
        )
