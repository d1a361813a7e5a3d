import numpy as np
import pytest

pytest.importorskip("cv2")

from stabletrack.visualization.overlay import draw_tracks  # noqa: E402


def test_draw_tracks_skips_tentative_by_default():
    frame = np.zeros((120, 160, 3), dtype=np.uint8)
    tentative = [{"id": 1, "bbox": [10.0, 10.0, 60.0, 60.0], "label": "cat", "score": 0.5, "state": "tentative"}]
    assert not draw_tracks(frame, tentative).any()

    confirmed = [dict(tentative[0], state="confirmed")]
    render = draw_tracks(frame, confirmed)
    assert render.any()
    assert not frame.any()
