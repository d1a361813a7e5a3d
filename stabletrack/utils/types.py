from dataclasses import dataclass, field
from typing import Any, Dict, List


@dataclass
class FramePacket:
    frame: object
    timestamp: float
    sensor_id: str = "camera_front"


@dataclass
class FrameDetections:
    """Detector output for one frame, index-aligned. Boxes are (y1, x1, y2, x2)."""

    boxes: List[List[float]] = field(default_factory=list)
    labels: List[str] = field(default_factory=list)
    scores: List[float] = field(default_factory=list)

    def __len__(self) -> int:
        return len(self.boxes)


@dataclass
class FrameResult:
    frame_id: int
    detection_frame: bool
    num_detections: int = 0
    tracks: List[Dict[str, Any]] = field(default_factory=list)
    rejected: bool = False
