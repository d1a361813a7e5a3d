from __future__ import annotations

from typing import Dict, Optional, Tuple

import cv2
import numpy as np
import torch
from ultralytics import YOLO

from stabletrack.perception.base import BaseDetector
from stabletrack.utils.boxes import scale_boxes, xyxy_to_yxyx
from stabletrack.utils.types import FrameDetections


class YOLODetector(BaseDetector):
    """
    YOLOv8 wrapper emitting (y1, x1, y2, x2) boxes in full-frame pixels.

    With input_size set, inference runs on a downscaled copy of the frame and
    boxes are scaled back, trading detector accuracy for speed.
    """

    def __init__(
        self,
        model_name: str = "yolov8n.pt",
        device: str | None = None,
        conf_thres: float = 0.25,
        input_size: Optional[Tuple[int, int]] = (320, 240),
        allowed_classes: Optional[Dict[int, str]] = None,
    ):
        self.device = device or ("mps" if torch.backends.mps.is_available() else "cpu")
        self.model = YOLO(model_name)
        self.model.to(self.device)
        self.conf_thres = conf_thres
        self.input_size = tuple(input_size) if input_size else None
        # None keeps every class the model knows
        self.allowed_classes = allowed_classes

    def infer(self, frame: np.ndarray) -> FrameDetections:
        h, w = frame.shape[:2]
        src = frame
        if self.input_size is not None:
            src = cv2.resize(frame, self.input_size, interpolation=cv2.INTER_LINEAR)

        results = self.model(
            src,
            device=self.device,
            conf=self.conf_thres,
            verbose=False,
        )[0]

        out = FrameDetections()
        if results.boxes is None:
            return out

        names = results.names
        for box in results.boxes:
            cls_id = int(box.cls.item())
            if self.allowed_classes is not None and cls_id not in self.allowed_classes:
                continue
            label = self.allowed_classes[cls_id] if self.allowed_classes else names[cls_id]
            out.boxes.append(xyxy_to_yxyx(box.xyxy[0].tolist()))
            out.labels.append(str(label))
            out.scores.append(float(box.conf.item()))

        if self.input_size is not None:
            out.boxes = scale_boxes(out.boxes, self.input_size, (w, h))
        return out
