"""
JSON 설정 파일 로더.

점(.)으로 구분된 키로 중첩 값을 읽고 쓰며, 섹션별 dataclass/pydantic 설정 객체를 만든다.

파일 예시:
    {
        "quality": {"min_overall_score": 0.65, "weights": {"sharpness": 0.35}},
        "extractor": {"output_size": 256},
        "analyzer": {"max_workers": 2},
        "detector": {"iris_radius_ratio": 0.08}
    }
"""

import logging
from dataclasses import fields
from pathlib import Path
from typing import Any, Dict, Optional

from iris_mapper.core.iris_detector import DetectorConfig
from iris_mapper.core.iris_extractor import ExtractorConfig
from iris_mapper.core.zone_analyzer import ZoneAnalyzerConfig
from iris_mapper.schemas.criteria import QualityCriteria
from iris_mapper.utils.file_io import read_json, write_json

logger = logging.getLogger(__name__)


class ConfigManager:
    def __init__(self, path: Optional[Path] = None, data: Optional[Dict] = None):
        self.config_path = Path(path) if path is not None else None
        self._config: Dict[str, Any] = {}
        if data:
            self._config = data
        elif self.config_path and self.config_path.exists():
            self._config = read_json(self.config_path)
            logger.info(f"Loaded config from {self.config_path}")

    def get(self, key: str, default: Any = None) -> Any:
        val = self._config
        for k in key.split("."):
            if not isinstance(val, dict) or k not in val:
                return default
            val = val[k]
        return val

    def set(self, key: str, value: Any):
        keys = key.split(".")
        val = self._config
        for k in keys[:-1]:
            val = val.setdefault(k, {})
        val[keys[-1]] = value

    def save(self, path: Optional[Path] = None):
        target = path or self.config_path
        if target:
            write_json(self._config, target)

    def _dataclass_section(self, name: str, cls):
        section = self.get(name, {}) or {}
        known = {f.name for f in fields(cls)}
        unknown = set(section) - known
        if unknown:
            logger.warning(f"Ignoring unknown '{name}' config keys: {sorted(unknown)}")
        return cls(**{k: v for k, v in section.items() if k in known})

    def quality_criteria(self) -> QualityCriteria:
        return QualityCriteria(**(self.get("quality", {}) or {}))

    def extractor_config(self) -> ExtractorConfig:
        return self._dataclass_section("extractor", ExtractorConfig)

    def analyzer_config(self) -> ZoneAnalyzerConfig:
        return self._dataclass_section("analyzer", ZoneAnalyzerConfig)

    def detector_config(self) -> DetectorConfig:
        return self._dataclass_section("detector", DetectorConfig)
