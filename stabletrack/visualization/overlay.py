from __future__ import annotations

from typing import Any, Dict, List

try:
    import cv2
except ImportError:  # pragma: no cover
    cv2 = None

from stabletrack.utils.boxes import yxyx_to_xyxy_int

TRACK_COLOR = (0, 0, 255)


def draw_tracks(frame: Any, tracks: List[Dict[str, Any]], confirmed_only: bool = True) -> Any:
    """Box, `ID:<id>` and `<label> <score%>` for each track snapshot."""
    if cv2 is None:
        return frame
    render = frame.copy()

    for tr in tracks:
        if confirmed_only and tr.get("state") != "confirmed":
            continue
        x1, y1, x2, y2 = yxyx_to_xyxy_int(tr["bbox"])
        cv2.rectangle(render, (x1, y1), (x2, y2), TRACK_COLOR, 2)
        cv2.putText(render, f"ID:{tr['id']}", (x1 + 4, y1 + 16), cv2.FONT_HERSHEY_SIMPLEX, 0.5, TRACK_COLOR, 2)
        if tr.get("label") and isinstance(tr.get("score"), float):
            txt = f"{tr['label']} {tr['score'] * 100:.1f}%"
            cv2.putText(render, txt, (x1 + 4, y1 + 36), cv2.FONT_HERSHEY_SIMPLEX, 0.5, TRACK_COLOR, 2)

    return render
