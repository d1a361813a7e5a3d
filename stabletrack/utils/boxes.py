from __future__ import annotations

from typing import List, Sequence, Tuple


def xyxy_to_yxyx(box: Sequence[float]) -> List[float]:
    x1, y1, x2, y2 = box
    return [float(y1), float(x1), float(y2), float(x2)]


def yxyx_to_xyxy_int(box: Sequence[float]) -> Tuple[int, int, int, int]:
    y1, x1, y2, x2 = box
    return int(round(x1)), int(round(y1)), int(round(x2)), int(round(y2))


def scale_boxes(
    boxes: Sequence[Sequence[float]],
    src_size: Tuple[int, int],
    dst_size: Tuple[int, int],
) -> List[List[float]]:
    """
    Rescale (y1, x1, y2, x2) boxes from a src (width, height) image to dst (width, height).
    """
    sw, sh = src_size
    dw, dh = dst_size
    fy, fx = dh / sh, dw / sw
    return [[b[0] * fy, b[1] * fx, b[2] * fy, b[3] * fx] for b in boxes]


def clip_box(box: Sequence[float], size: Tuple[int, int]) -> List[float]:
    w, h = size
    y1, x1, y2, x2 = box
    return [min(max(y1, 0.0), h), min(max(x1, 0.0), w), min(max(y2, 0.0), h), min(max(x2, 0.0), w)]
