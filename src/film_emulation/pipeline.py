"""
Film Emulation Pipeline API

Ordered, stage-sequential application of the film look to a PixelBuffer,
plus a file/batch front end with parallel processing support.
"""

import asyncio
import functools
import logging
import threading
from concurrent.futures import ProcessPoolExecutor, as_completed
from dataclasses import dataclass
from multiprocessing import cpu_count
from pathlib import Path
from typing import Callable, Iterable, List, Optional, Tuple

import cv2
import numpy as np
from tqdm import tqdm

from film_emulation.color_utils import clamp_channel
from film_emulation.data import (
    STAGE_APPLIED,
    STAGE_DEGRADED,
    STAGE_SKIPPED,
    BatchResult,
    FilterPreset,
    PipelineResult,
    PipelineState,
    PixelBuffer,
    ProcessingResult,
    StageReport,
)
from film_emulation.errors import (
    FilmEmulationError,
    InvalidInputError,
    PipelineCancelledError,
    RenderingFailedError,
    StageDegradedError,
    StageFailedError,
)
from film_emulation.image_io import load_image, save_image
from film_emulation.noise import draw_seed
from film_emulation.processing_utils import (
    StageContext,
    apply_bloom,
    apply_color_controls,
    apply_color_matrix_tint,
    apply_grain,
    apply_split_toning,
    apply_temperature,
    apply_tone_curve,
    apply_vignette,
)

log = logging.getLogger(__name__)

StageFunc = Callable[[PixelBuffer, FilterPreset, StageContext], PixelBuffer]


def _always_enabled(preset: FilterPreset) -> bool:
    return True


def _tint_enabled(preset: FilterPreset) -> bool:
    return preset.color_matrix_tint is not None


@dataclass(frozen=True)
class Stage:
    """A named pure transformation with an explicit degrade-to-identity policy."""
    name: str
    func: StageFunc
    enabled: Callable[[FilterPreset], bool] = _always_enabled

    def apply(self,
              buffer: PixelBuffer,
              preset: FilterPreset,
              context: StageContext) -> Tuple[PixelBuffer, StageReport]:
        """
        Run the stage.

        Returns:
            (output, report). Degraded stages return their input unchanged.

        Raises:
            StageFailedError: the stage failed in a way that must abort the call
        """
        if not self.enabled(preset):
            log.debug(f"Stage '{self.name}' skipped")
            return buffer, StageReport(self.name, STAGE_SKIPPED)

        try:
            output = self.func(buffer, preset, context)
        except StageDegradedError as e:
            return self._degrade(buffer, e.message)
        except cv2.error as e:
            return self._degrade(buffer, f"OpenCV error: {e}")
        except StageFailedError:
            raise
        except FilmEmulationError as e:
            raise StageFailedError(self.name, e.message) from e
        except Exception as e:
            raise StageFailedError(self.name, str(e)) from e

        if output.size != buffer.size:
            raise StageFailedError(
                self.name,
                f"output {output.width}x{output.height} != input {buffer.width}x{buffer.height}")
        if not np.all(np.isfinite(output.data)):
            return self._degrade(buffer, "produced non-finite samples")

        log.debug(f"Stage '{self.name}' applied")
        return output, StageReport(self.name, STAGE_APPLIED)

    def _degrade(self, buffer: PixelBuffer, reason: str) -> Tuple[PixelBuffer, StageReport]:
        log.warning(f"Stage '{self.name}' degraded to pass-through: {reason}")
        return buffer, StageReport(self.name, STAGE_DEGRADED, reason)


# Order is significant: reordering changes the output.
DEFAULT_STAGES: Tuple[Stage, ...] = (
    Stage("temperature", apply_temperature),
    Stage("color_controls", apply_color_controls),
    Stage("tone_curve", apply_tone_curve),
    Stage("color_matrix_tint", apply_color_matrix_tint, _tint_enabled),
    Stage("split_toning", apply_split_toning),
    Stage("bloom", apply_bloom),
    Stage("grain", apply_grain),
    Stage("vignette", apply_vignette),
)

STAGE_ORDER: Tuple[str, ...] = tuple(stage.name for stage in DEFAULT_STAGES)


class FilmPipeline:
    """
    Applies the film look: a fixed, ordered list of stages sharing one preset.

    Construct once, invoke many times. Invocations share no mutable state and
    may run concurrently on different buffers.
    """

    def __init__(self,
                 preset: Optional[FilterPreset] = None,
                 stages: Iterable[Stage] = DEFAULT_STAGES,
                 seed_source: Callable[[], int] = draw_seed):
        """
        Args:
            preset: Filter constants (default: CPM35 look)
            stages: Ordered stages to run
            seed_source: Called for a grain seed when run() gets none
        """
        self.preset = preset if preset is not None else FilterPreset()
        self.stages = tuple(stages)
        self.seed_source = seed_source

    @property
    def stage_names(self) -> Tuple[str, ...]:
        return tuple(stage.name for stage in self.stages)

    def run(self,
            image: PixelBuffer,
            seed: Optional[int] = None,
            cancel_event: Optional[threading.Event] = None) -> PipelineResult:
        """
        Run every stage in order over a copy of `image`.

        Args:
            image: Input RGB(A) buffer; never modified
            seed: Grain seed; the same seed gives bit-identical output
            cancel_event: When set, the call stops at the next stage boundary

        Returns:
            PipelineResult in state SUCCEEDED (with buffer) or FAILED (with error)
        """
        result = PipelineResult(state=PipelineState.IDLE)

        if not isinstance(image, PixelBuffer):
            return self._fail(result, InvalidInputError(f"expected PixelBuffer, got {type(image).__name__}"))
        try:
            image.validate()
        except InvalidInputError as e:
            return self._fail(result, e)

        result.seed = seed if seed is not None else self.seed_source()
        result.state = PipelineState.RUNNING
        context = StageContext(seed=result.seed)
        log.debug(f"Running {len(self.stages)} stages on {image.width}x{image.height} "
                  f"image (preset={self.preset.name}, seed={result.seed})")

        current = image.copy()
        for stage in self.stages:
            if cancel_event is not None and cancel_event.is_set():
                return self._fail(result, PipelineCancelledError(f"before stage '{stage.name}'"))
            try:
                current, report = stage.apply(current, self.preset, context)
            except StageFailedError as e:
                return self._fail(result, e)
            result.reports.append(report)

        if cancel_event is not None and cancel_event.is_set():
            return self._fail(result, PipelineCancelledError("before rendering"))

        try:
            result.buffer = self._render(current, image)
        except RenderingFailedError as e:
            return self._fail(result, e)

        result.state = PipelineState.SUCCEEDED
        if result.degraded_stages:
            log.info(f"Pipeline finished with degraded stages: {result.degraded_stages}")
        return result

    def apply(self, image: PixelBuffer, seed: Optional[int] = None) -> PixelBuffer:
        """Run the pipeline and return the output buffer, raising on failure."""
        return self.run(image, seed=seed).unwrap()

    async def run_async(self, image: PixelBuffer, seed: Optional[int] = None) -> PipelineResult:
        """
        Run the pipeline off the event loop as one cancelable unit of work.
        Cancelling the awaiting task stops the worker at the next stage boundary
        and discards every intermediate buffer.
        """
        cancel_event = threading.Event()
        loop = asyncio.get_running_loop()
        future = loop.run_in_executor(None, functools.partial(self.run, image, seed, cancel_event))
        try:
            return await future
        except asyncio.CancelledError:
            cancel_event.set()
            log.info("Pipeline call cancelled")
            raise

    @staticmethod
    def _render(buffer: PixelBuffer, source: PixelBuffer) -> PixelBuffer:
        if buffer.size != source.size:
            raise RenderingFailedError(
                f"output {buffer.width}x{buffer.height} != input {source.width}x{source.height}")
        if not np.all(np.isfinite(buffer.data)):
            raise RenderingFailedError("non-finite samples")
        return PixelBuffer(clamp_channel(buffer.data), source.color_space)

    @staticmethod
    def _fail(result: PipelineResult, error: FilmEmulationError) -> PipelineResult:
        log.error(f"Pipeline failed: {error.message}")
        result.state = PipelineState.FAILED
        result.error = error
        result.buffer = None
        return result


# ============================================================================
# File / batch processing
# ============================================================================

def _process_single_image_worker(args: Tuple) -> ProcessingResult:
    """
    Worker function for parallel processing.
    Must be at module level for pickling.
    """
    input_path, output_path, preset, seed, quality, quiet = args

    try:
        image = load_image(input_path)
        result = FilmPipeline(preset).run(image, seed=seed)
        save_image(result.unwrap(), output_path, quality=quality)

        return ProcessingResult(
            input_path=str(input_path),
            output_path=str(output_path),
            status='success',
            degraded_stages=result.degraded_stages
        )

    except Exception as e:
        if not quiet:
            log.warning(f"Error processing {Path(input_path).name}: {e}")
        return ProcessingResult(
            input_path=str(input_path),
            output_path='',
            status='error',
            error=str(e)
        )


class FilmProcessor:
    """
    Applies a preset to image files, one at a time or as a parallel batch.
    """

    def __init__(self, preset: Optional[FilterPreset] = None, n_workers: Optional[int] = None):
        """
        Args:
            preset: Filter constants (default: CPM35 look)
            n_workers: Number of parallel workers (default: cpu_count() - 1)
        """
        self.preset = preset if preset is not None else FilterPreset()

        if n_workers is None:
            self.n_workers = max(1, cpu_count() - 1)
        else:
            self.n_workers = max(1, n_workers)

        log.info(f"FilmProcessor initialized with {self.n_workers} workers (preset={self.preset.name})")

    def output_path_for(self, input_path: Path, output_dir: Optional[Path] = None) -> Path:
        output_dir = output_dir if output_dir is not None else input_path.parent
        return output_dir / f"{input_path.stem}_{self.preset.name}{input_path.suffix}"

    def process_image(self,
                      input_path: Path,
                      output_path: Optional[Path] = None,
                      seed: Optional[int] = None,
                      quality: int = 95) -> ProcessingResult:
        """Filter a single image file."""
        input_path = Path(input_path)
        output_path = Path(output_path) if output_path else self.output_path_for(input_path)
        return _process_single_image_worker((input_path, output_path, self.preset, seed, quality, False))

    def process_batch(self,
                      input_dir: Path,
                      output_dir: Path,
                      pattern: str = "*.jpg",
                      limit: Optional[int] = None,
                      seed: Optional[int] = None,
                      quality: int = 95,
                      use_parallel: bool = True,
                      show_progress: bool = True) -> BatchResult:
        """
        Filter every file in `input_dir` matching `pattern`.

        Args:
            seed: Base grain seed; file i gets seed + i. None draws a fresh seed per file.
        """
        input_dir = Path(input_dir)
        output_dir = Path(output_dir)
        files: List[Path] = sorted(input_dir.glob(pattern))
        if limit:
            files = files[:limit]

        log.info(f"Processing {len(files)} files from {input_dir} (preset={self.preset.name})")

        if len(files) == 0:
            return BatchResult(0, 0, 0, [], str(output_dir))

        task_args = [
            (f, self.output_path_for(f, output_dir), self.preset,
             None if seed is None else seed + i, quality, True)
            for i, f in enumerate(files)
        ]

        results = []

        if use_parallel and self.n_workers > 1:
            with ProcessPoolExecutor(max_workers=self.n_workers) as executor:
                futures = {executor.submit(_process_single_image_worker, args): args[0]
                           for args in task_args}
                with tqdm(total=len(files), desc="Processing", unit="image",
                          disable=not show_progress) as pbar:
                    for future in as_completed(futures):
                        result = future.result()
                        results.append(result)
                        self._update_progress(pbar, result)
                        pbar.update(1)
        else:
            task_iter = tqdm(task_args, desc="Processing", unit="image", disable=not show_progress)
            for args in task_iter:
                result = _process_single_image_worker(args)
                results.append(result)
                self._update_progress(task_iter, result)

        successful = sum(1 for r in results if r.status == 'success')
        failed = sum(1 for r in results if r.status == 'error')
        for r in results:
            if r.status == 'error':
                log.warning(f"Failed: {Path(r.input_path).name}: {r.error}")

        return BatchResult(
            total=len(files),
            successful=successful,
            failed=failed,
            results=results,
            output_dir=str(output_dir.absolute())
        )

    @staticmethod
    def _update_progress(pbar: tqdm, result: ProcessingResult):
        if result.status == 'success':
            pbar.set_postfix_str(f"✓ {Path(result.input_path).name}")
        else:
            pbar.set_postfix_str(f"✗ {Path(result.input_path).name}")
