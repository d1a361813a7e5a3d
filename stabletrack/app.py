from __future__ import annotations

import argparse
import json
from dataclasses import asdict
from datetime import datetime
from pathlib import Path
from typing import Any, Dict

try:
    import cv2
except ImportError:  # pragma: no cover
    cv2 = None

from rich.console import Console
from tqdm import tqdm

from stabletrack.inputs.video_input import VideoInput
from stabletrack.perception.tracking.deepsort_tracker import DeepSORTTracker, TrackerConfig
from stabletrack.perception.tracking.persistence import save_snapshot
from stabletrack.runtime.orchestrator import Orchestrator
from stabletrack.utils.config import get, load_yaml, section
from stabletrack.utils.logger import setup_logger
from stabletrack.visualization.overlay import draw_tracks


def make_run_dir(base_dir: str | Path) -> Path:
    ts = datetime.now().strftime("%Y%m%d_%H%M%S")
    run_dir = Path(base_dir) / f"run_{ts}"
    run_dir.mkdir(parents=True, exist_ok=True)
    return run_dir


def main():
    parser = argparse.ArgumentParser(description="stabletrack - multi-object tracking on a video stream")
    parser.add_argument("--config", default="configs/tracker.yaml", help="Path to YAML config")
    parser.add_argument("--input", required=True, help="Path to input video or camera index")
    args = parser.parse_args()

    cfg: Dict[str, Any] = load_yaml(args.config)

    output_base = get(cfg, "runtime.output_dir", "results")
    run_dir = make_run_dir(output_base)
    logger = setup_logger(log_dir=run_dir, level=get(cfg, "runtime.log_level", "INFO"))

    console = Console()
    console.print(f"[bold]stabletrack[/bold] run dir: {run_dir}")

    # Heavy model imports only when actually running on video
    from stabletrack.perception.detection.yolo import YOLODetector
    from stabletrack.perception.reid.embedder import MobileNetEmbedder

    tracker_cfg = TrackerConfig.from_dict(section(cfg, "tracker"))
    logger.info("Tracker config: %s", asdict(tracker_cfg))
    detector_input = get(cfg, "perception.detector_input", None)
    orchestrator = Orchestrator(
        tracker=DeepSORTTracker(tracker_cfg),
        detector=YOLODetector(
            model_name=get(cfg, "perception.detector_model", "yolov8n.pt"),
            device=get(cfg, "perception.device", None),
            conf_thres=float(get(cfg, "perception.conf_thres", 0.25)),
            input_size=tuple(detector_input) if detector_input else None,
        ),
        embedder=MobileNetEmbedder(device=get(cfg, "perception.embedder_device", "cpu")),
        detect_every=int(get(cfg, "runtime.detect_every", 3)),
        logger=logger,
    )

    vin = VideoInput(args.input)
    logger.info("Input: %s", args.input)

    save_video = bool(get(cfg, "runtime.save_video", True))
    save_tracks = bool(get(cfg, "runtime.save_tracks", True))
    overlay_enabled = bool(get(cfg, "runtime.overlay.enabled", True))
    confirmed_only = bool(get(cfg, "runtime.overlay.confirmed_only", True))

    writer = None
    out_video_path = run_dir / "output.mp4"
    if save_video:
        if cv2 is None:
            raise ImportError("opencv-python is required to save video output")
        width = vin.meta.width if vin.meta else 0
        height = vin.meta.height if vin.meta else 0
        fps = vin.meta.fps if vin.meta else 30
        fourcc = cv2.VideoWriter_fourcc(*"mp4v")
        writer = cv2.VideoWriter(str(out_video_path), fourcc, fps, (width, height))
        if not writer.isOpened():
            raise RuntimeError("Could not open VideoWriter (mp4v). Try a different codec/container.")

    tracks_path = run_dir / "tracks.jsonl"
    tracks_file = tracks_path.open("w", encoding="utf-8") if save_tracks else None

    total = vin.meta.frame_count if vin.meta and vin.meta.frame_count > 0 else None
    seen_ids = set()
    rejected_cycles = 0
    try:
        for frame_id, packet in tqdm(vin.frames(), total=total, desc="Tracking"):
            result = orchestrator.process_frame(frame_id, packet.frame)
            rejected_cycles += int(result.rejected)
            seen_ids.update(t["id"] for t in result.tracks if t["state"] == "confirmed")

            if tracks_file is not None:
                tracks_file.write(json.dumps(asdict(result)) + "\n")

            if writer is not None:
                render = draw_tracks(packet.frame, result.tracks, confirmed_only=confirmed_only) if overlay_enabled else packet.frame
                writer.write(render)
    finally:
        vin.stop()
        if writer is not None:
            writer.release()
        if tracks_file is not None:
            tracks_file.close()

    if bool(get(cfg, "runtime.snapshot", False)):
        snap = save_snapshot(run_dir / "tracker_snapshot.json", orchestrator.tracker.snapshot())
        logger.info("Saved tracker snapshot: %s", snap)
    if save_tracks:
        logger.info("Saved tracks: %s", tracks_path)
    if save_video:
        logger.info("Saved video: %s", out_video_path)

    console.print(f"Confirmed identities: [bold]{len(seen_ids)}[/bold]  rejected cycles: {rejected_cycles}")
    logger.info("Done.")


if __name__ == "__main__":
    main()
