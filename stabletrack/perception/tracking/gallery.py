from __future__ import annotations

from collections import deque
from typing import Deque, Iterable, List

import numpy as np


def cosine_distance(a: np.ndarray, b: np.ndarray) -> np.ndarray:
    """
    Pairwise cosine distance (1 - cosine similarity) between rows of a (N x L)
    and rows of b (M x L). Inputs need not be normalised. Result is in [0, 2].
    """
    a = np.atleast_2d(np.asarray(a, dtype=np.float64))
    b = np.atleast_2d(np.asarray(b, dtype=np.float64))
    a = a / np.maximum(np.linalg.norm(a, axis=1, keepdims=True), 1e-12)
    b = b / np.maximum(np.linalg.norm(b, axis=1, keepdims=True), 1e-12)
    return np.clip(1.0 - a @ b.T, 0.0, 2.0)


class AppearanceGallery:
    """
    Rolling memory of a track's most recent appearance embeddings.

    Distances are nearest-neighbour over the whole gallery, so an object whose
    appearance drifts a little between frames still matches one of its recent looks.
    """

    def __init__(self, budget: int = 30, embeddings: Iterable[np.ndarray] = ()):
        if budget < 1:
            raise ValueError("Gallery budget must be >= 1")
        self.budget = int(budget)
        self._items: Deque[np.ndarray] = deque(maxlen=self.budget)
        for emb in embeddings:
            self.add(emb)

    def __len__(self) -> int:
        return len(self._items)

    def add(self, embedding: np.ndarray) -> None:
        # deque(maxlen) drops the oldest entry when full
        self._items.append(np.asarray(embedding, dtype=np.float64).reshape(-1))

    def as_matrix(self) -> np.ndarray:
        return np.stack(self._items) if self._items else np.empty((0, 0))

    def distances(self, embeddings: np.ndarray) -> np.ndarray:
        """Minimum cosine distance from each candidate row to any stored embedding."""
        candidates = np.atleast_2d(np.asarray(embeddings, dtype=np.float64))
        if not self._items:
            return np.full(candidates.shape[0], np.inf)
        return cosine_distance(self.as_matrix(), candidates).min(axis=0)

    def distance(self, embedding: np.ndarray) -> float:
        return float(self.distances(embedding)[0])

    def to_list(self) -> List[List[float]]:
        return [e.tolist() for e in self._items]
