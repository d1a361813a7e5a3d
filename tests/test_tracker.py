import numpy as np
import pytest

from stabletrack.perception.tracking.deepsort_tracker import DeepSORTTracker, TrackerConfig
from stabletrack.perception.tracking.errors import InputShapeError
from stabletrack.perception.tracking.track import TrackState


def basis(i, dim=16):
    v = np.zeros(dim)
    v[i] = 1.0
    return v


def confirmed_tracker(box=(100, 100, 200, 200), hits=5, **cfg):
    tracker = DeepSORTTracker(TrackerConfig(**cfg))
    for _ in range(hits):
        tracker.update([list(box)], [basis(0)], ["person"], [0.9])
    return tracker


def state_of(tracker):
    return [(t.track_id, t.state, t.bbox, t.time_since_update, t.hits) for t in tracker.tracks]


def test_scenario_confirmed_track_matches_nearby_detection():
    tracker = confirmed_tracker(hits=5, max_age=60, matching_threshold=0.45)
    track = tracker.tracks[0]
    assert track.is_confirmed()
    assert track.hits == 5

    det = [105, 102, 205, 202]
    q = 0.9 * basis(0) + np.sqrt(1 - 0.81) * basis(1)
    tracks = tracker.update([det], [q], ["person"], [0.8])

    assert len(tracks) == 1
    assert tracks[0].track_id == track.track_id
    assert tracks[0].time_since_update == 0
    assert tracks[0].score == 0.8
    assert tracks[0].bbox[0] > 100.0
    for got, want in zip(tracks[0].bbox, det):
        assert abs(got - want) <= 5.0


def test_scenario_predict_only_advances_by_velocity():
    tracker = confirmed_tracker()
    track = tracker.tracks[0]
    track.mean[4] = 2.0
    track.mean[5] = 0.0
    cx, cy = track.mean[0], track.mean[1]
    before = (track.track_id, track.label, track.score)

    tracks = tracker.predict_only()

    assert tracks[0] is track
    assert track.mean[0] == pytest.approx(cx + 2.0)
    assert track.mean[1] == pytest.approx(cy)
    assert (track.track_id, track.label, track.score) == before
    assert track.time_since_update == 1


def test_identity_stable_for_smoothly_moving_object():
    tracker = DeepSORTTracker(TrackerConfig())
    ids = []
    x = 100.0
    for _ in range(15):
        tracks = tracker.update([[100.0, x, 200.0, x + 80.0]], [basis(3)], ["car"], [0.7])
        ids.append([t.track_id for t in tracks])
        tracker.predict_only()
        tracker.predict_only()
        x += 6.0
    assert all(i == [1] for i in ids)
    assert tracker.tracks[0].is_confirmed()
    assert tracker.tracks[0].velocity[0] > 0.0


def test_gating_blocks_far_detection_despite_identical_embedding():
    tracker = confirmed_tracker()
    tracks = tracker.update([[400, 400, 500, 500]], [basis(0)], ["person"], [0.9])
    assert [t.track_id for t in tracks] == [1, 2]
    assert tracks[0].time_since_update == 1
    assert tracks[1].state == TrackState.TENTATIVE


def test_two_objects_keep_their_identities():
    tracker = DeepSORTTracker(TrackerConfig())
    for step in range(8):
        boxes = [[100, 100 + 3 * step, 200, 180 + 3 * step], [100, 400 - 3 * step, 200, 480 - 3 * step]]
        tracks = tracker.update(boxes, [basis(0), basis(1)], ["a", "b"], [0.9, 0.8])
    assert [(t.track_id, t.label) for t in tracks] == [(1, "a"), (2, "b")]


def test_update_is_deterministic():
    def run():
        tracker = DeepSORTTracker(TrackerConfig())
        rng = np.random.default_rng(7)
        for step in range(10):
            boxes = [[50 + step, 50, 150 + step, 120], [300, 300 + 2 * step, 380, 360 + 2 * step]]
            embs = [basis(0) + rng.normal(scale=0.05, size=16), basis(5) + rng.normal(scale=0.05, size=16)]
            tracker.update(boxes, embs, ["x", "y"], [0.9, 0.6])
            tracker.predict_only()
        return state_of(tracker)

    assert run() == run()


def test_mismatched_input_lengths_leave_tracks_untouched():
    tracker = confirmed_tracker()
    before = state_of(tracker)
    with pytest.raises(InputShapeError):
        tracker.update([[100, 100, 200, 200]], [basis(0)], ["person"], [])
    assert state_of(tracker) == before


def test_embedding_dimension_change_is_rejected_without_mutation():
    tracker = confirmed_tracker()
    before = state_of(tracker)
    with pytest.raises(InputShapeError):
        tracker.update([[100, 100, 200, 200]], [np.ones(8)], ["person"], [0.9])
    assert state_of(tracker) == before


def test_degenerate_box_is_skipped_rest_processed():
    tracker = DeepSORTTracker(TrackerConfig())
    tracks = tracker.update(
        [[10, 10, 10, 50], [100, 100, 200, 200]],
        [basis(0), basis(1)],
        ["bad", "good"],
        [0.9, 0.9],
    )
    assert [t.label for t in tracks] == ["good"]


def test_confirmed_tracks_filter_and_render_snapshot():
    tracker = confirmed_tracker()
    tracker.update([[100, 100, 200, 200], [400, 400, 500, 500]], [basis(0), basis(1)], ["person", "dog"], [0.9, 0.5])
    assert [t.track_id for t in tracker.confirmed_tracks()] == [1]
    snap = tracker.tracks[1].to_dict()
    assert set(snap) == {"id", "bbox", "label", "score", "state"}
    assert snap["state"] == "tentative"


def test_constructor_overrides_and_config_validation():
    tracker = DeepSORTTracker(max_age=60, matching_threshold=0.45)
    assert tracker.cfg.max_age == 60
    assert tracker.cfg.matching_threshold == 0.45
    with pytest.raises(ValueError):
        TrackerConfig(appearance_weight=1.5)
    with pytest.raises(ValueError):
        TrackerConfig.from_dict({"max_age": 10, "bogus": 1})


def test_greedy_assignment_also_tracks():
    tracker = confirmed_tracker(assignment="greedy")
    tracks = tracker.update([[102, 101, 202, 201]], [basis(0)], ["person"], [0.9])
    assert [t.track_id for t in tracks] == [1]


def test_non_numeric_score_rejects_only_that_detection():
    tracker = DeepSORTTracker(TrackerConfig())
    tracks = tracker.update(
        [[100, 100, 200, 200], [300, 300, 400, 400]],
        [basis(0), basis(1)],
        ["person", "car"],
        ["high", 0.8],
    )
    assert [(t.track_id, t.label) for t in tracks] == [(1, "car")]
