import pytest
from pydantic import ValidationError

from iris_mapper.data.config_manager import ConfigManager


def test_config_manager_init_data():
    cfg = ConfigManager(data={"a": 1})
    assert cfg.get("a") == 1


def test_config_manager_get_nested():
    cfg = ConfigManager(data={"a": {"b": 2}})
    assert cfg.get("a.b") == 2
    assert cfg.get("a.c", 3) == 3
    assert cfg.get("a.b.c", "missing") == "missing"


def test_config_manager_set_nested():
    cfg = ConfigManager(data={})
    cfg.set("x.y", 10)
    assert cfg.get("x.y") == 10


def test_config_manager_load_and_save(tmp_json, tmp_path):
    path = tmp_json({"extractor": {"output_size": 256}})
    cfg = ConfigManager(path)
    assert cfg.extractor_config().output_size == 256

    cfg.set("analyzer.max_workers", 2)
    out = tmp_path / "saved.json"
    cfg.save(out)
    assert ConfigManager(out).analyzer_config().max_workers == 2


def test_missing_file_uses_defaults(tmp_path):
    cfg = ConfigManager(tmp_path / "absent.json")
    assert cfg.quality_criteria().min_overall_score == 0.6
    assert cfg.extractor_config().output_size == 512
    assert cfg.detector_config().iris_radius_ratio == 0.07


def test_quality_section_overrides():
    cfg = ConfigManager(data={"quality": {"min_overall_score": 0.7, "weights": {"sharpness": 0.3}}})
    criteria = cfg.quality_criteria()
    assert criteria.min_overall_score == 0.7
    assert criteria.weights.sharpness == 0.3
    assert criteria.weights.brightness == 0.15


def test_invalid_quality_value_rejected():
    cfg = ConfigManager(data={"quality": {"min_overall_score": 1.5}})
    with pytest.raises(ValidationError):
        cfg.quality_criteria()


def test_unknown_keys_ignored_with_warning(caplog):
    cfg = ConfigManager(data={"detector": {"iris_radius_ratio": 0.08, "bogus": True}})
    with caplog.at_level("WARNING"):
        config = cfg.detector_config()
    assert config.iris_radius_ratio == 0.08
    assert "bogus" in caplog.text
