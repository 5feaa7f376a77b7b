"""
Block-level tamper suspicion analysis.

ForensicsAnalyzer runs four independent detectors over one decoded image,
normalizes and fuses their maps, and flags the blocks above a nearest-rank
percentile of the fused score.

Each run gets a generation token. Starting a new run supersedes every run
still in flight: when a superseded run's JPEG round trip resolves, its
result is dropped without touching the analyzer's state.
"""
import asyncio
import concurrent.futures
import logging
import threading
from typing import Any, Dict, List, Optional, Tuple

import numpy as np

from . import detectors, fusion, imaging
from .arena import RunArena
from .backend import BACKEND_GATE, ReadinessGate
from .errors import AnalysisError, TamperlensError
from .grid import build_grid
from .types import (
    AnalysisOptions,
    AnalysisResult,
    BlockGrid,
    DenoiseCapability,
    PixelBuffer,
    RunRecord,
    RunStatus,
)

logger = logging.getLogger(__name__)

FALLBACK_WARNING = "fastNlMeansDenoising unavailable, using GaussianBlur"


class ForensicsAnalyzer:
    """
    Highlights blocks that are statistically inconsistent with the rest of
    an image:

    1. Local luminance variance (inverted)
    2. JPEG 8x8 grid discontinuity (inverted)
    3. Residual noise variance after denoising (inverted)
    4. Error Level Analysis on the red channel

    Scores are heuristics for visual inspection, not calibrated
    probabilities.
    """

    def __init__(self, options: Optional[AnalysisOptions] = None,
                 max_workers: int = 1,
                 gate: Optional[ReadinessGate] = None):
        """Initialize ForensicsAnalyzer.

        Args:
            options: Block size, threshold percentile and ELA quality.
            max_workers: Number of threads for the three synchronous
                detectors. 1 (default) runs them sequentially.
            gate: Back-end readiness gate; defaults to the process-wide one.
        """
        self.options = options or AnalysisOptions()
        self._max_workers = max(1, max_workers)
        self._gate = gate or BACKEND_GATE
        self._lock = threading.Lock()
        self._generation = 0
        self.latest_result: Optional[AnalysisResult] = None
        self.last_run: Optional[RunRecord] = None

    @property
    def generation(self) -> int:
        return self._generation

    def is_current(self, generation: int) -> bool:
        return generation == self._generation

    def _begin_run(self) -> int:
        with self._lock:
            self._generation += 1
            self.latest_result = None
            return self._generation

    # ------------------------------------------------------------------
    # Public entry points
    # ------------------------------------------------------------------

    def analyze(self, pixels: PixelBuffer) -> Optional[AnalysisResult]:
        """Analyze a decoded image synchronously.

        Returns None if another run was started before this one finished.
        """
        return self._analyze(pixels, self._begin_run())

    def analyze_bytes(self, data: bytes) -> Optional[AnalysisResult]:
        """Decode image bytes and analyze them.

        Raises ImageDecodeError before any detector runs if the bytes
        cannot be decoded.
        """
        generation = self._begin_run()
        pixels = imaging.decode_image(data)
        return self._analyze(pixels, generation)

    async def analyze_async(self, pixels: PixelBuffer) -> Optional[AnalysisResult]:
        """Analyze a decoded image, awaiting the JPEG round trip off-loop.

        Returns None when superseded by a newer run.
        """
        return await self._analyze_async(pixels, self._begin_run())

    async def analyze_bytes_async(self, data: bytes) -> Optional[AnalysisResult]:
        generation = self._begin_run()
        pixels = imaging.decode_image(data)
        return await self._analyze_async(pixels, generation)

    # ------------------------------------------------------------------
    # Run orchestration
    # ------------------------------------------------------------------

    def _analyze(self, pixels: PixelBuffer, generation: int) -> Optional[AnalysisResult]:
        self._gate.wait()
        arena = RunArena(generation)
        status, error = RunStatus.FAILED, None
        try:
            with arena:
                grid, maps, capability, warnings = self._run_sync_detectors(pixels, arena)
                recompressed = arena.own(
                    "recompressed", imaging.recompress(pixels, self.options.jpeg_quality)
                )
                result = self._finish(pixels, grid, maps, recompressed,
                                      capability, warnings, generation)
                status = RunStatus.COMPLETED if result is not None else RunStatus.STALE
                return result
        except TamperlensError as e:
            error = str(e)
            raise
        except Exception as e:
            error = str(e)
            logger.exception(f"Run {generation}: analysis failed")
            raise AnalysisError(f"Analysis failed: {e}") from e
        finally:
            self._record(generation, status, arena, error)

    async def _analyze_async(self, pixels: PixelBuffer,
                             generation: int) -> Optional[AnalysisResult]:
        await self._gate.wait_async()
        arena = RunArena(generation)
        status, error = RunStatus.FAILED, None
        try:
            with arena:
                grid, maps, capability, warnings = self._run_sync_detectors(pixels, arena)

                if not self.is_current(generation):
                    logger.debug(f"Run {generation}: superseded before recompression")
                    status = RunStatus.STALE
                    return None

                recompressed = arena.own(
                    "recompressed",
                    await imaging.recompress_async(pixels, self.options.jpeg_quality),
                )
                result = self._finish(pixels, grid, maps, recompressed,
                                      capability, warnings, generation)
                status = RunStatus.COMPLETED if result is not None else RunStatus.STALE
                return result
        except asyncio.CancelledError:
            error = "cancelled"
            raise
        except TamperlensError as e:
            error = str(e)
            raise
        except Exception as e:
            error = str(e)
            logger.exception(f"Run {generation}: analysis failed")
            raise AnalysisError(f"Analysis failed: {e}") from e
        finally:
            self._record(generation, status, arena, error)

    def _run_sync_detectors(
        self, pixels: PixelBuffer, arena: RunArena
    ) -> Tuple[BlockGrid, Dict[str, np.ndarray], DenoiseCapability, List[str]]:
        """Variance, grid artifact and residual noise maps over one grayscale copy."""
        grid = build_grid(pixels.width, pixels.height, self.options.block_size)
        gray = arena.own("gray", imaging.to_grayscale(pixels))

        warnings: List[str] = []
        capability = imaging.probe_denoise_capability()
        if capability is DenoiseCapability.GAUSSIAN_BLUR:
            logger.warning(FALLBACK_WARNING)
            warnings.append(FALLBACK_WARNING)

        detector_tasks = [
            ("variance", detectors.variance_map, (gray, grid)),
            ("grid_artifacts", detectors.grid_artifact_map, (gray, grid)),
            ("residual_noise", detectors.residual_noise_map, (gray, grid, capability, arena)),
        ]

        maps: Dict[str, Any] = {}
        if self._max_workers > 1:
            with concurrent.futures.ThreadPoolExecutor(max_workers=self._max_workers) as executor:
                futures = {
                    key: executor.submit(fn, *args)
                    for key, fn, args in detector_tasks
                }
                for key, future in futures.items():
                    maps[key] = future.result()
        else:
            for key, fn, args in detector_tasks:
                maps[key] = fn(*args)

        logger.debug(
            f"Run {arena.generation}: {grid.by_count}x{grid.bx_count} blocks, "
            f"denoise={capability.value}"
        )
        return grid, maps, capability, warnings

    def _finish(self, pixels: PixelBuffer, grid: BlockGrid, maps: Dict[str, np.ndarray],
                recompressed: np.ndarray, capability: DenoiseCapability,
                warnings: List[str], generation: int) -> Optional[AnalysisResult]:
        """ELA map, normalization, fusion and thresholding; drops stale runs."""
        if not self.is_current(generation):
            logger.debug(f"Run {generation}: superseded, discarding result")
            return None

        ela = detectors.ela_map(pixels.rgba, recompressed, grid)

        composite = fusion.fuse(
            fusion.invert(fusion.normalize(maps["variance"])),
            fusion.invert(fusion.normalize(maps["grid_artifacts"])),
            fusion.invert(fusion.normalize(maps["residual_noise"])),
            fusion.normalize(ela),
        )
        threshold = fusion.select_threshold(composite, self.options.threshold_percent)
        mask = fusion.highlight_mask(composite, threshold)

        result = AnalysisResult(
            grid=grid,
            mask=mask,
            composite=composite,
            threshold=threshold,
            variance=maps["variance"],
            grid_artifacts=maps["grid_artifacts"],
            residual_noise=maps["residual_noise"],
            ela=ela,
            denoise_capability=capability,
            generation=generation,
            warnings=warnings,
        )

        with self._lock:
            if not self.is_current(generation):
                logger.debug(f"Run {generation}: superseded, discarding result")
                return None
            self.latest_result = result
        return result

    def _record(self, generation: int, status: RunStatus, arena: RunArena,
                error: Optional[str]):
        arena.release()
        if status is RunStatus.STALE or not self.is_current(generation):
            logger.debug(f"Run {generation}: {status.value}, not recorded")
            return
        self.last_run = RunRecord(
            generation=generation,
            status=status,
            released_buffers=arena.released_count,
            error=error,
        )
