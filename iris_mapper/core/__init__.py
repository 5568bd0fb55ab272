"""
Core Algorithm Modules

Contains the main algorithmic components of the iris analysis pipeline:
- zone_atlas: Iridology zone chart and point-in-zone test
- pixel_stats: Shared pixel scanning primitives
- IrisDetector: Pluggable eye/iris landmark detection
- QualityAssessor: Capture quality metrics and accept gate
- IrisExtractor: Iris crop, resize and enhancement
- color_analyzer: RGB/HSV conversion and iris color classification
- ZoneAnalyzer: Per-zone color/texture analysis orchestration
- insight_generator: Templated wellness insights
"""

__all__ = [
    "IrisDetector",
    "QualityAssessor",
    "IrisExtractor",
    "ZoneAnalyzer",
]
