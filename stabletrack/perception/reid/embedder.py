from __future__ import annotations

from typing import List, Sequence

import cv2
import numpy as np
import torch
import torch.nn.functional as F
import torchvision

from stabletrack.perception.base import BaseEmbedder
from stabletrack.utils.boxes import clip_box

_IMAGENET_MEAN = torch.tensor([0.485, 0.456, 0.406]).view(1, 3, 1, 1)
_IMAGENET_STD = torch.tensor([0.229, 0.224, 0.225]).view(1, 3, 1, 1)


class MobileNetEmbedder(BaseEmbedder):
    """
    Appearance embeddings from MobileNetV3-Small ImageNet features.
    Each box is cropped, resized to crop_size and globally average-pooled.
    """

    def __init__(self, device: str = "cpu", crop_size: int = 224, batch_size: int = 16):
        self.device = device
        self.crop_size = crop_size
        self.batch_size = batch_size
        model = torchvision.models.mobilenet_v3_small(weights="DEFAULT")
        self.features = model.features
        self.features.to(self.device)
        self.features.eval()

    def _crop(self, frame: np.ndarray, box: Sequence[float]) -> np.ndarray:
        h, w = frame.shape[:2]
        y1, x1, y2, x2 = clip_box(box, (w, h))
        # at least one pixel, even for boxes hanging off the frame edge
        y1, x1 = min(int(y1), h - 1), min(int(x1), w - 1)
        y2, x2 = max(int(np.ceil(y2)), y1 + 1), max(int(np.ceil(x2)), x1 + 1)
        crop = frame[y1:y2, x1:x2]
        crop = cv2.resize(crop, (self.crop_size, self.crop_size), interpolation=cv2.INTER_LINEAR)
        return cv2.cvtColor(crop, cv2.COLOR_BGR2RGB)

    @torch.no_grad()
    def embed(self, frame: np.ndarray, boxes: Sequence[Sequence[float]]) -> List[np.ndarray]:
        if len(boxes) == 0:
            return []
        crops = np.stack([self._crop(frame, b) for b in boxes])
        out: List[np.ndarray] = []
        for start in range(0, len(crops), self.batch_size):
            batch = torch.from_numpy(crops[start : start + self.batch_size]).permute(0, 3, 1, 2).float() / 255.0
            batch = ((batch - _IMAGENET_MEAN) / _IMAGENET_STD).to(self.device)
            feats = self.features(batch).mean(dim=(2, 3))
            feats = F.normalize(feats, dim=1)
            out.extend(feats.cpu().numpy())
        return out
