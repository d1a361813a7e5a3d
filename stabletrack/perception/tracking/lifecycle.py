from __future__ import annotations

from typing import Dict, List, Optional, Sequence

from stabletrack.perception.tracking.assignment import solve
from stabletrack.perception.tracking.cost import CostModel
from stabletrack.perception.tracking.detection import Detection
from stabletrack.perception.tracking.kalman_filter import KalmanFilter
from stabletrack.perception.tracking.track import Track, TrackState
from stabletrack.utils.logger import get_logger

logger = get_logger(__name__)


class TrackArena:
    """
    Slot storage for live tracks.

    Slots freed by deleted tracks are reused for new ones; track ids are not.
    Iteration order is ascending track id.
    """

    def __init__(self):
        self._slots: List[Optional[Track]] = []
        self._free: List[int] = []
        # ids are inserted in increasing order, so dict order is id order
        self._slot_of: Dict[int, int] = {}

    def __len__(self) -> int:
        return len(self._slot_of)

    def __contains__(self, track_id: int) -> bool:
        return track_id in self._slot_of

    def add(self, track: Track) -> int:
        if track.track_id in self._slot_of:
            raise KeyError(f"Track id {track.track_id} already live")
        if self._slot_of and track.track_id < next(reversed(self._slot_of)):
            raise ValueError(f"Track id {track.track_id} is lower than an existing live id")
        if self._free:
            slot = self._free.pop()
            self._slots[slot] = track
        else:
            slot = len(self._slots)
            self._slots.append(track)
        self._slot_of[track.track_id] = slot
        return slot

    def remove(self, track_id: int) -> Track:
        slot = self._slot_of.pop(track_id)
        track = self._slots[slot]
        self._slots[slot] = None
        self._free.append(slot)
        return track

    def get(self, track_id: int) -> Track:
        return self._slots[self._slot_of[track_id]]

    def live(self) -> List[Track]:
        return [self._slots[slot] for slot in self._slot_of.values()]

    @property
    def capacity(self) -> int:
        return len(self._slots)


class TrackLifecycleManager:
    """Owns the live track set and runs one association cycle per detection frame."""

    def __init__(
        self,
        kf: KalmanFilter,
        cost_model: CostModel,
        n_init: int,
        max_age: int,
        gallery_budget: int = 30,
        assignment: str = "hungarian",
        next_id: int = 1,
    ):
        self.kf = kf
        self.cost_model = cost_model
        self.n_init = n_init
        self.max_age = max_age
        self.gallery_budget = gallery_budget
        self.assignment = assignment
        self.arena = TrackArena()
        self._next_id = next_id

    @property
    def next_id(self) -> int:
        return self._next_id

    @next_id.setter
    def next_id(self, value: int) -> None:
        # ids are never reused, so the counter only moves forward
        self._next_id = max(self._next_id, int(value))

    @property
    def tracks(self) -> List[Track]:
        return self.arena.live()

    def predict_all(self) -> None:
        for track in self.arena.live():
            track.predict(self.kf)

    def advance(self) -> List[Track]:
        """Predict every track for a frame without detections and drop expired ones."""
        self.predict_all()
        for track in self.arena.live():
            if track.is_confirmed() and track.time_since_update > self.max_age:
                track.state = TrackState.DELETED
        self._purge_deleted()
        return self.arena.live()

    def step(self, detections: Sequence[Detection]) -> List[Track]:
        self.predict_all()

        live = self.arena.live()
        cost = self.cost_model.cost_matrix(live, detections)
        result = solve(cost, method=self.assignment)

        for t_idx, d_idx in result.matches:
            track = live[t_idx]
            was_tentative = track.is_tentative()
            track.update(self.kf, detections[d_idx])
            if was_tentative and track.is_confirmed():
                logger.debug("Track %d confirmed (%s)", track.track_id, track.label)

        for t_idx in result.unmatched_tracks:
            live[t_idx].mark_missed()

        for d_idx in result.unmatched_detections:
            self._initiate_track(detections[d_idx])

        self._purge_deleted()
        return self.arena.live()

    def adopt(self, track: Track) -> None:
        """Insert an already-built track (used when restoring a snapshot)."""
        self.arena.add(track)
        self._next_id = max(self._next_id, track.track_id + 1)

    def _initiate_track(self, detection: Detection) -> Track:
        mean, covariance = self.kf.initiate(detection.to_xyah())
        track = Track(
            mean,
            covariance,
            self._next_id,
            self.n_init,
            self.max_age,
            label=detection.label,
            score=detection.score,
            embedding=detection.embedding,
            gallery_budget=self.gallery_budget,
        )
        # n_init == 1 means a single hit is enough
        if track.hits >= self.n_init:
            track.state = TrackState.CONFIRMED
        self._next_id += 1
        self.arena.add(track)
        logger.debug("Track %d created (%s %.2f)", track.track_id, track.label, track.score)
        return track

    def _purge_deleted(self) -> None:
        for track in self.arena.live():
            if track.is_deleted():
                self.arena.remove(track.track_id)
                logger.debug("Track %d deleted after %d frames (tsu=%d)", track.track_id, track.age, track.time_since_update)
