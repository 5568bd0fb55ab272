"""
Main CLI Entry Point

홍채 이미지 분석 파이프라인 CLI 프로그램.
"""

import argparse
import logging
import sys
from pathlib import Path
from typing import List, Optional

from iris_mapper.core.iris_detector import PlaceholderIrisDetector
from iris_mapper.core.zone_atlas import zones_for_eye
from iris_mapper.core.zone_mapper import visualize_zones
from iris_mapper.data.config_manager import ConfigManager
from iris_mapper.pipeline import IrisAnalysisPipeline
from iris_mapper.schemas.export_schemas import AnalysisExport
from iris_mapper.utils.file_io import write_text
from iris_mapper.utils.image_utils import read_image_bytes, write_image


def setup_logging(debug: bool = False):
    """로깅 설정"""
    level = logging.DEBUG if debug else logging.INFO

    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(level)
    handler.setFormatter(
        logging.Formatter(fmt="%(asctime)s - %(name)s - %(levelname)s - %(message)s", datefmt="%Y-%m-%d %H:%M:%S")
    )

    logging.basicConfig(level=level, handlers=[handler], force=True)


def build_pipeline(config_path: Optional[Path]) -> IrisAnalysisPipeline:
    config = ConfigManager(config_path)
    return IrisAnalysisPipeline(
        detector=PlaceholderIrisDetector(config.detector_config()),
        criteria=config.quality_criteria(),
        extractor_config=config.extractor_config(),
        analyzer_config=config.analyzer_config(),
    )


def cmd_analyze(args) -> int:
    """단일 이미지 분석"""
    logger = logging.getLogger(__name__)

    image_path = Path(args.image)
    if not image_path.exists():
        logger.error(f"Image not found: {image_path}")
        return 1

    pipeline = build_pipeline(Path(args.config) if args.config else None)
    result = pipeline.process(read_image_bytes(image_path), is_left=args.left)

    print("\n" + "=" * 60)
    print("  Iris Analysis Result")
    print("=" * 60)
    print(f"  Image:    {image_path}")
    print(f"  Eye:      {'left' if args.left else 'right'}")
    print(f"  Quality:  {result.quality_score:.2f}")

    if not result.is_success:
        print(f"  Status:   REJECTED ({result.error_kind.value})")
        print(f"  Guidance: {result.message}")
        if result.quality is not None and result.quality.metrics is not None:
            for issue in result.quality.metrics.issues:
                print(f"    - {issue}")
        print("=" * 60 + "\n")
        return 2

    analysis = result.analysis
    print(f"  Color:    {analysis.overall_color_profile.description}")
    print(f"  Summary:  {analysis.summary}")
    print(f"  Confidence: {analysis.analysis_confidence:.2f}")

    print("\n  Zones:")
    for za in analysis.zone_analyses:
        print(f"    {za.zone.name:<16} significance={za.significance_score:.2f}  {za.primary_observation}")

    print("\n  Insights:")
    for insight in analysis.insights:
        print(f"    [{insight.confidence_level}] {insight.title} ({insight.category.display_name})")

    print(f"\n  {analysis.disclaimer}")
    print("=" * 60 + "\n")

    if args.output:
        export = AnalysisExport.from_analysis(analysis, result.quality)
        write_text(export.model_dump_json(indent=2), Path(args.output))
        logger.info(f"Result saved to {args.output}")

    if args.save_normalized:
        write_image(Path(args.save_normalized), result.normalized_image)
        logger.info(f"Normalized iris saved to {args.save_normalized}")

    if args.overlay:
        overlay = visualize_zones(result.normalized_image, zones_for_eye(args.left))
        write_image(Path(args.overlay), overlay)
        logger.info(f"Zone overlay saved to {args.overlay}")

    return 0


def cmd_zones(args) -> int:
    """차트 영역 목록 출력"""
    for zone in zones_for_eye(args.left):
        print(
            f"{zone.id:<16} {zone.name:<20} {zone.body_system:<15} "
            f"r=[{zone.inner_radius:.2f}, {zone.outer_radius:.2f}]"
        )
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    """메인 함수"""
    common = argparse.ArgumentParser(add_help=False)
    common.add_argument("--debug", action="store_true", help="Enable debug logging")
    eye = common.add_mutually_exclusive_group()
    eye.add_argument("--left", dest="left", action="store_true", help="Analyze the left eye")
    eye.add_argument("--right", dest="left", action="store_false", help="Analyze the right eye (default)")
    common.set_defaults(left=False)

    parser = argparse.ArgumentParser(
        description="Iris zone mapping and wellness reflection tool",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    subparsers = parser.add_subparsers(dest="command", help="Command to execute")

    analyze_parser = subparsers.add_parser(
        "analyze",
        parents=[common],
        help="Analyze a single eye image",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  iris-mapper analyze capture.jpg --left
  iris-mapper analyze capture.jpg --output results/analysis.json --overlay results/zones.png
        """,
    )
    analyze_parser.add_argument("image", help="Image file path")
    analyze_parser.add_argument("--config", help="JSON config overrides")
    analyze_parser.add_argument("--output", help="Output JSON file path")
    analyze_parser.add_argument("--save-normalized", help="Save the normalized iris image (PNG)")
    analyze_parser.add_argument("--overlay", help="Save a zone overlay image (PNG)")

    subparsers.add_parser("zones", parents=[common], help="List chart zones for an eye")

    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        return 0

    setup_logging(args.debug)
    logger = logging.getLogger(__name__)

    try:
        if args.command == "analyze":
            return cmd_analyze(args)
        if args.command == "zones":
            return cmd_zones(args)
    except ValueError as e:
        logger.error(f"Invalid configuration: {e}")
        return 1
    except OSError as e:
        logger.error(f"I/O error: {e}")
        return 1
    except KeyboardInterrupt:
        logger.warning("Interrupted by user")
        return 130

    return 0


if __name__ == "__main__":
    sys.exit(main())
