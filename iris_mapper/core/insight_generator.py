"""
Insight Generator

zone 분석 결과와 zone의 신체 계통 라벨/성찰 문구 템플릿을 웰니스 인사이트로 변환한다.
임계값 기반 템플릿 선택만 수행하며 의학적 판단은 하지 않는다.
"""

import logging
import uuid
from typing import Dict, List, Sequence

from iris_mapper.schemas.analysis import InsightCategory, WellnessInsight, ZoneAnalysis

logger = logging.getLogger(__name__)

WELLNESS_DISCLAIMER = (
    "For wellness education only. Not medical advice. Iridology observations are "
    "reflection prompts and do not diagnose, treat or predict any health condition."
)

GENERAL_INSIGHT_CONFIDENCE = 0.5
GENERAL_PROMPT_COUNT = 2

SYSTEM_CATEGORIES: Dict[str, InsightCategory] = {
    "Digestive": InsightCategory.NUTRITION,
    "Respiratory": InsightCategory.ACTIVITY,
    "Cardiovascular": InsightCategory.ACTIVITY,
    "Nervous": InsightCategory.STRESS,
    "Urinary": InsightCategory.LIFESTYLE,
    "Immune": InsightCategory.LIFESTYLE,
    "Endocrine": InsightCategory.LIFESTYLE,
}


def category_for_system(body_system: str) -> InsightCategory:
    return SYSTEM_CATEGORIES.get(body_system, InsightCategory.GENERAL)


def group_by_system(zone_analyses: Sequence[ZoneAnalysis]) -> Dict[str, List[ZoneAnalysis]]:
    """신체 계통별 그룹 (처음 등장한 순서 유지)."""
    groups: Dict[str, List[ZoneAnalysis]] = {}
    for analysis in zone_analyses:
        groups.setdefault(analysis.zone.body_system, []).append(analysis)
    return groups


def generate_insights(zone_analyses: Sequence[ZoneAnalysis]) -> List[WellnessInsight]:
    """
    신체 계통별로 인사이트 1개씩 생성.

    - 계통 내 notable zone(significance > 0.6)이 있으면 첫 번째 notable zone 기반 인사이트
      (제목 = zone 이름, 신뢰도 = significance, 성찰 문구 전체)
    - 없으면 계통 일반 인사이트 (신뢰도 0.5, 첫 zone의 성찰 문구 2개)
    """
    insights = []
    for system, analyses in group_by_system(zone_analyses).items():
        notable = [a for a in analyses if a.is_notable]
        category = category_for_system(system)

        if notable:
            zone = notable[0].zone
            insights.append(
                WellnessInsight(
                    id=str(uuid.uuid4()),
                    body_system=system,
                    title=zone.name,
                    description=zone.description,
                    reflection_prompts=tuple(zone.reflections),
                    category=category,
                    confidence=notable[0].significance_score,
                    related_zones=tuple(a.zone.id for a in notable),
                )
            )
        else:
            zone = analyses[0].zone
            insights.append(
                WellnessInsight(
                    id=str(uuid.uuid4()),
                    body_system=system,
                    title=f"{system} System",
                    description=f"General wellness reflection for {system}",
                    reflection_prompts=tuple(zone.reflections[:GENERAL_PROMPT_COUNT]),
                    category=category,
                    confidence=GENERAL_INSIGHT_CONFIDENCE,
                    related_zones=tuple(a.zone.id for a in analyses),
                )
            )

    logger.debug(f"Generated {len(insights)} insights from {len(zone_analyses)} zone analyses")
    return insights


def analysis_confidence(zone_analyses: Sequence[ZoneAnalysis]) -> float:
    """clamp(0.7 · 평균 significance + 0.3), zone이 없으면 0."""
    if not zone_analyses:
        return 0.0
    mean = sum(a.significance_score for a in zone_analyses) / len(zone_analyses)
    return float(min(1.0, max(0.0, mean * 0.7 + 0.3)))
