import argparse

import numpy as np
from rich.console import Console
from rich.table import Table

from stabletrack.perception.tracking.deepsort_tracker import DeepSORTTracker, TrackerConfig
from stabletrack.utils.logger import setup_logger


def make_objects(rng: np.random.Generator, n: int, dim: int):
    objs = []
    for i in range(n):
        emb = rng.normal(size=dim)
        objs.append(
            {
                "label": ["person", "car", "dog"][i % 3],
                "box": np.array([60.0 + 90 * i, 40.0 + 120 * i, 160.0 + 90 * i, 120.0 + 120 * i]),
                "vel": rng.uniform(-3, 3, size=2),
                "emb": emb / np.linalg.norm(emb),
            }
        )
    return objs


def main():
    parser = argparse.ArgumentParser(description="Run the tracker on synthetic detections")
    parser.add_argument("--frames", type=int, default=120)
    parser.add_argument("--objects", type=int, default=4)
    parser.add_argument("--detect-every", type=int, default=3)
    parser.add_argument("--miss-rate", type=float, default=0.1)
    parser.add_argument("--seed", type=int, default=0)
    args = parser.parse_args()

    setup_logger(level="INFO")
    rng = np.random.default_rng(args.seed)
    objs = make_objects(rng, args.objects, dim=64)
    tracker = DeepSORTTracker(TrackerConfig())

    for frame in range(1, args.frames + 1):
        for o in objs:
            o["box"] += np.r_[o["vel"][1], o["vel"][0], o["vel"][1], o["vel"][0]]
        if frame % args.detect_every:
            tracker.predict_only()
            continue
        boxes, embs, labels, scores = [], [], [], []
        for o in objs:
            if rng.random() < args.miss_rate:
                continue
            boxes.append((o["box"] + rng.normal(scale=1.5, size=4)).tolist())
            noisy = o["emb"] + rng.normal(scale=0.05, size=o["emb"].shape)
            embs.append(noisy.tolist())
            labels.append(o["label"])
            scores.append(float(rng.uniform(0.5, 0.99)))
        tracker.update(boxes, embs, labels, scores)

    table = Table(title=f"Live tracks after {args.frames} frames")
    for col in ("id", "state", "label", "score", "hits", "age", "since update", "bbox"):
        table.add_column(col)
    for t in tracker.tracks:
        table.add_row(
            str(t.track_id),
            t.state.value,
            t.label,
            f"{t.score:.2f}",
            str(t.hits),
            str(t.age),
            str(t.time_since_update),
            ", ".join(f"{v:.0f}" for v in t.bbox),
        )
    Console().print(table)


if __name__ == "__main__":
    main()
