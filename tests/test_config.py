from pathlib import Path

import pytest

from stabletrack.perception.tracking.deepsort_tracker import TrackerConfig
from stabletrack.utils.config import get, load_yaml, section

CONFIG = Path(__file__).resolve().parents[1] / "configs" / "tracker.yaml"


def test_default_config_builds_tracker_config():
    cfg = load_yaml(CONFIG)
    tracker_cfg = TrackerConfig.from_dict(section(cfg, "tracker"))
    assert tracker_cfg.max_age == 60
    assert tracker_cfg.matching_threshold == 0.45
    assert get(cfg, "runtime.detect_every") == 3


def test_dotted_get_falls_back_to_default():
    cfg = {"runtime": {"overlay": {"enabled": False}}}
    assert get(cfg, "runtime.overlay.enabled", True) is False
    assert get(cfg, "runtime.missing.key", "x") == "x"


def test_missing_config_file_raises(tmp_path):
    with pytest.raises(FileNotFoundError):
        load_yaml(tmp_path / "nope.yaml")


def test_section_handles_missing_null_and_scalar_values():
    cfg = {"tracker": None, "runtime": {"detect_every": 3}}
    assert section(cfg, "tracker") == {}
    assert section(cfg, "perception") == {}
    assert section(cfg, "runtime") == {"detect_every": 3}
    with pytest.raises(ValueError):
        section(cfg, "runtime.detect_every")


def test_non_mapping_config_root_is_rejected(tmp_path):
    path = tmp_path / "list.yaml"
    path.write_text("- a\n- b\n", encoding="utf-8")
    with pytest.raises(ValueError):
        load_yaml(path)
