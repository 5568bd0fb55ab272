"""
Iris Analysis Pipeline Module

캡처 1건을 처리하는 엔드투엔드 파이프라인과 재촬영 시 이전 분석을 폐기하는 세션.

decode → detect → quality gate → extract → zone analysis
순서로 실행하며, 모든 실패는 CaptureResult 값으로 반환한다 (예외를 밖으로 던지지 않음).
"""

import logging
import threading
from concurrent.futures import Future, ThreadPoolExecutor
from datetime import datetime
from typing import Callable, Optional, Union

import numpy as np

from iris_mapper.core.errors import (
    DECODE_FAILURE_MESSAGE,
    NO_DETECTION_MESSAGE,
    OUT_OF_BOUNDS_MESSAGE,
    PARTIAL_DETECTION_MESSAGE,
    AnalysisCancelledError,
    CaptureErrorKind,
    CaptureResult,
    DecodeError,
    IrisPipelineError,
    OutOfBoundsCropError,
)
from iris_mapper.core.iris_detector import IrisDetector, PlaceholderIrisDetector
from iris_mapper.core.iris_extractor import ExtractorConfig, IrisExtractor
from iris_mapper.core.quality_assessor import GuidanceCode, QualityAssessor, QualityReport
from iris_mapper.core.zone_analyzer import ZoneAnalyzer, ZoneAnalyzerConfig
from iris_mapper.schemas.criteria import QualityCriteria
from iris_mapper.utils.image_utils import decode_frame

logger = logging.getLogger(__name__)

CANCELLED_MESSAGE = "Analysis was superseded by a newer capture."
PROCESSING_FAILURE_MESSAGE = "Something went wrong while analyzing the image. Please try again."

FrameData = Union[bytes, bytearray, np.ndarray]


def _rejection_kind(report: QualityReport) -> CaptureErrorKind:
    code = report.guidance.code
    if code == GuidanceCode.NO_DETECTION:
        return CaptureErrorKind.NO_DETECTION
    if code in (GuidanceCode.BOTH_EYES_REQUIRED, GuidanceCode.EYE_NOT_VISIBLE):
        return CaptureErrorKind.PARTIAL_DETECTION
    return CaptureErrorKind.LOW_QUALITY


class IrisAnalysisPipeline:
    """
    엔드투엔드 홍채 분석 파이프라인.

    단계 간 상태를 공유하지 않으므로 여러 스레드에서 동시에 process()를 호출해도 된다.
    """

    def __init__(
        self,
        detector: Optional[IrisDetector] = None,
        criteria: Optional[QualityCriteria] = None,
        extractor_config: Optional[ExtractorConfig] = None,
        analyzer_config: Optional[ZoneAnalyzerConfig] = None,
    ):
        """
        Args:
            detector: 홍채 검출기 (None이면 PlaceholderIrisDetector)
            criteria: 품질 게이트 기준
            extractor_config: 추출/정규화 설정
            analyzer_config: zone 분석 설정
        """
        self.detector = detector or PlaceholderIrisDetector()
        self.assessor = QualityAssessor(criteria)
        self.extractor = IrisExtractor(extractor_config)
        self.zone_analyzer = ZoneAnalyzer(analyzer_config)

        logger.info(f"IrisAnalysisPipeline initialized (detector={type(self.detector).__name__})")

    @staticmethod
    def _check_cancelled(cancel_event: Optional[threading.Event], stage: str) -> None:
        if cancel_event is not None and cancel_event.is_set():
            raise AnalysisCancelledError(f"Cancelled before {stage}")

    def process(
        self,
        frame_data: FrameData,
        is_left: bool,
        cancel_event: Optional[threading.Event] = None,
    ) -> CaptureResult:
        """
        캡처 1건 처리.

        Args:
            frame_data: 인코딩된 프레임 바이트 (또는 디코딩된 BGR 배열)
            is_left: 분석 대상 눈
            cancel_event: 설정되면 다음 단계 진입 전에 중단

        Returns:
            CaptureResult: 성공 시 분석 집계 + 정규화 이미지, 실패 시 error_kind + 안내 문구
        """
        start_time = datetime.now()
        side = "left" if is_left else "right"
        logger.info(f"Processing capture ({side} eye)")

        report: Optional[QualityReport] = None
        try:
            logger.debug("Step 1: Decoding frame")
            frame = decode_frame(frame_data)

            self._check_cancelled(cancel_event, "detection")
            logger.debug("Step 2: Detecting irises")
            landmarks = self.detector.detect(frame)

            self._check_cancelled(cancel_event, "quality gate")
            logger.debug("Step 3: Assessing capture quality")
            report = self.assessor.assess(frame, landmarks, is_left)
            if not report.accepted:
                kind = _rejection_kind(report)
                logger.warning(f"Capture rejected: {kind.value} ({report.guidance.message})")
                return CaptureResult.error(kind, report.guidance.message, quality=report)

            self._check_cancelled(cancel_event, "extraction")
            logger.debug("Step 4: Extracting normalized iris")
            extraction = self.extractor.extract(frame, landmarks.eye(is_left))

            self._check_cancelled(cancel_event, "zone analysis")
            logger.debug("Step 5: Analyzing zones")
            analysis = self.zone_analyzer.analyze(extraction.image, is_left, cancel_event)

            processing_time = (datetime.now() - start_time).total_seconds() * 1000
            logger.info(
                f"Processing complete: {len(analysis.zone_analyses)} zones, "
                f"quality={report.metrics.overall_score:.2f}, time={processing_time:.1f}ms"
            )
            return CaptureResult.success(analysis, extraction.image, report)

        except DecodeError as e:
            logger.warning(f"Frame decode failed: {e}")
            return CaptureResult.error(e.kind, DECODE_FAILURE_MESSAGE)

        except OutOfBoundsCropError as e:
            logger.warning(f"Iris crop out of bounds: {e}")
            return CaptureResult.error(e.kind, OUT_OF_BOUNDS_MESSAGE, quality=report)

        except AnalysisCancelledError as e:
            logger.info(f"Capture processing cancelled: {e}")
            return CaptureResult.error(e.kind, CANCELLED_MESSAGE, quality=report)

        except IrisPipelineError as e:
            logger.warning(f"Capture failed ({e.kind.value}): {e}")
            message = {
                CaptureErrorKind.NO_DETECTION: NO_DETECTION_MESSAGE,
                CaptureErrorKind.PARTIAL_DETECTION: PARTIAL_DETECTION_MESSAGE,
            }.get(e.kind, str(e))
            return CaptureResult.error(e.kind, message, quality=report)

        except Exception as e:
            logger.error(f"Unexpected error in pipeline: {e}", exc_info=True)
            return CaptureResult.error(CaptureErrorKind.PROCESSING_FAILURE, PROCESSING_FAILURE_MESSAGE, quality=report)


class AnalysisSession:
    """
    재촬영을 지원하는 분석 세션.

    submit()마다 세대(generation) 번호가 증가하고, 이전 실행은 취소 이벤트로 중단된다.
    가장 최신 세대의 결과만 latest_result로 게시되며, 늦게 끝난 이전 결과는 폐기된다.

    Example:
        >>> with AnalysisSession(IrisAnalysisPipeline()) as session:
        ...     session.submit(frame_bytes, is_left=True)
        ...     result = session.wait()
    """

    def __init__(
        self,
        pipeline=None,
        on_result: Optional[Callable[[CaptureResult], None]] = None,
        max_workers: int = 2,
    ):
        self.pipeline = pipeline or IrisAnalysisPipeline()
        self.on_result = on_result
        self._executor = ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="iris-analysis")
        self._lock = threading.Lock()
        self._generation = 0
        self._current: Optional[Future] = None
        self._cancel_event: Optional[threading.Event] = None
        self._latest: Optional[CaptureResult] = None

    @property
    def generation(self) -> int:
        return self._generation

    @property
    def latest_result(self) -> Optional[CaptureResult]:
        with self._lock:
            return self._latest

    def submit(self, frame_data: FrameData, is_left: bool) -> Future:
        """새 캡처를 제출하고 진행 중인 이전 분석을 취소한다."""
        with self._lock:
            self._cancel_pending()
            self._generation += 1
            generation = self._generation
            cancel_event = threading.Event()
            self._cancel_event = cancel_event
            future = self._executor.submit(self._run, generation, frame_data, is_left, cancel_event)
            self._current = future

        logger.debug(f"Submitted capture generation {generation}")
        return future

    def _cancel_pending(self) -> None:
        if self._cancel_event is not None:
            self._cancel_event.set()
        if self._current is not None and not self._current.done():
            self._current.cancel()

    def _run(
        self,
        generation: int,
        frame_data: FrameData,
        is_left: bool,
        cancel_event: threading.Event,
    ) -> CaptureResult:
        result = self.pipeline.process(frame_data, is_left, cancel_event)
        with self._lock:
            current = self._generation
            if generation == current:
                self._latest = result
        if generation != current:
            logger.info(f"Discarding stale result from generation {generation} (current {current})")
            return result
        # 콜백은 lock 밖에서 호출 (콜백이 세션을 다시 사용할 수 있음)
        if self.on_result is not None and not cancel_event.is_set():
            self.on_result(result)
        return result

    def cancel(self) -> None:
        """진행 중인 분석을 취소하고 결과 게시를 막는다."""
        with self._lock:
            self._cancel_pending()
            self._generation += 1

    def wait(self, timeout: Optional[float] = None) -> Optional[CaptureResult]:
        """현재 세대의 분석이 끝날 때까지 기다린 후 최신 결과를 반환."""
        with self._lock:
            current = self._current
        if current is not None and not current.cancelled():
            current.result(timeout=timeout)
        return self.latest_result

    def close(self) -> None:
        self.cancel()
        self._executor.shutdown(wait=True)

    def __enter__(self) -> "AnalysisSession":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()
