from __future__ import annotations

import abc
from typing import List, Sequence

import numpy as np

from stabletrack.utils.types import FrameDetections


class BaseDetector(abc.ABC):
    @abc.abstractmethod
    def infer(self, frame: np.ndarray) -> FrameDetections:
        """
        Input:
            frame: BGR image (H, W, 3)
        Output:
            FrameDetections with (y1, x1, y2, x2) pixel boxes in frame coordinates
        """
        raise NotImplementedError


class BaseEmbedder(abc.ABC):
    @abc.abstractmethod
    def embed(self, frame: np.ndarray, boxes: Sequence[Sequence[float]]) -> List[np.ndarray]:
        """
        One fixed-length appearance vector per (y1, x1, y2, x2) box, same order.
        All vectors for a frame must be computed before the tracker update runs.
        """
        raise NotImplementedError
