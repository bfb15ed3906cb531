"""
Tests for the pipeline orchestrator: ordering, determinism, error policy,
cancellation and the pinned mid-gray scenario.
"""

import asyncio
import logging
import threading
from pathlib import Path

import numpy as np
import pytest

from film_emulation import (
    CPM35_PRESET,
    DEFAULT_STAGES,
    NEUTRAL_PRESET,
    STAGE_ORDER,
    FilmPipeline,
    PipelineState,
    PixelBuffer,
    Stage,
)
from film_emulation.errors import (
    InvalidInputError,
    PipelineCancelledError,
    StageFailedError,
)


GOLDEN_SEED = 35
GOLDEN_PATH = Path(__file__).parent / "fixtures" / "golden_mid_gray_4x4.npy"


class TestStageOrder:

    def test_order_is_pinned(self):
        assert STAGE_ORDER == (
            "temperature",
            "color_controls",
            "tone_curve",
            "color_matrix_tint",
            "split_toning",
            "bloom",
            "grain",
            "vignette",
        )

    def test_pipeline_uses_default_order(self):
        assert FilmPipeline().stage_names == STAGE_ORDER

    def test_reordering_changes_output(self, random_image):
        default = FilmPipeline(CPM35_PRESET).apply(random_image, seed=3)
        reversed_ = FilmPipeline(CPM35_PRESET, stages=DEFAULT_STAGES[::-1]).apply(random_image, seed=3)
        assert not np.allclose(default.data, reversed_.data)

    def test_reports_follow_order(self, random_image):
        result = FilmPipeline().run(random_image, seed=1)
        assert [r.stage for r in result.reports] == list(STAGE_ORDER)
        assert all(r.status == "applied" for r in result.reports)

    def test_tint_skipped_without_matrix(self, random_image):
        result = FilmPipeline(CPM35_PRESET.replace(color_matrix_tint=None)).run(random_image, seed=1)
        statuses = {r.stage: r.status for r in result.reports}
        assert statuses["color_matrix_tint"] == "skipped"

    def test_tint_skip_matches_pipeline_without_tint(self, random_image):
        preset = CPM35_PRESET.replace(color_matrix_tint=None)
        result = FilmPipeline(preset).run(random_image, seed=2)
        without_tint = [s for s in DEFAULT_STAGES if s.name != "color_matrix_tint"]
        expected = FilmPipeline(preset, stages=without_tint).apply(random_image, seed=2)
        assert result.degraded_stages == []
        assert np.array_equal(result.buffer.data, expected.data)


class TestPipelineOutput:

    @pytest.mark.parametrize("width, height, channels", [
        (1, 1, 4),
        (7, 3, 4),
        (16, 9, 3),
        (5, 12, 3),
    ])
    def test_dimensions_preserved(self, width, height, channels):
        img = PixelBuffer(np.random.default_rng(0).random((height, width, channels)))
        out = FilmPipeline().apply(img, seed=1)
        assert out.data.shape == (height, width, channels)
        assert out.color_space == img.color_space

    def test_output_in_range(self, random_image):
        out = FilmPipeline().apply(random_image, seed=1)
        assert out.data.min() >= 0.0
        assert out.data.max() <= 1.0

    def test_alpha_untouched(self, random_image):
        out = FilmPipeline().apply(random_image, seed=1)
        np.testing.assert_array_equal(out.alpha, random_image.alpha)

    def test_input_not_modified(self, random_image):
        before = random_image.data.copy()
        FilmPipeline().run(random_image, seed=1)
        np.testing.assert_array_equal(random_image.data, before)

    def test_neutral_preset_is_identity(self, random_image):
        out = FilmPipeline(NEUTRAL_PRESET).apply(random_image, seed=1)
        np.testing.assert_allclose(out.data, random_image.data, atol=1e-9)


class TestDeterminism:

    def test_same_seed_bit_identical(self, random_image):
        pipeline = FilmPipeline()
        a = pipeline.apply(random_image, seed=7)
        b = pipeline.apply(random_image, seed=7)
        assert np.array_equal(a.data, b.data)

    def test_different_seeds_differ(self, random_image):
        pipeline = FilmPipeline()
        a = pipeline.apply(random_image, seed=7)
        b = pipeline.apply(random_image, seed=8)
        assert not np.array_equal(a.data, b.data)

    def test_injected_seed_source(self, random_image):
        result = FilmPipeline(seed_source=lambda: 99).run(random_image)
        assert result.seed == 99
        explicit = FilmPipeline().apply(random_image, seed=99)
        assert np.array_equal(result.buffer.data, explicit.data)

    def test_default_seed_source_draws_fresh_seeds(self, random_image):
        pipeline = FilmPipeline()
        assert pipeline.run(random_image).seed != pipeline.run(random_image).seed


class TestInvalidInput:

    @pytest.mark.parametrize("shape", [(0, 4, 4), (4, 0, 4), (0, 0, 3)])
    def test_empty_image(self, shape):
        result = FilmPipeline().run(PixelBuffer(np.zeros(shape)))
        assert result.state is PipelineState.FAILED
        assert isinstance(result.error, InvalidInputError)
        assert result.buffer is None
        assert result.reports == []

    def test_no_buffer_allocated(self, monkeypatch):
        copies = []
        monkeypatch.setattr(PixelBuffer, "copy", lambda self: copies.append(self))
        FilmPipeline().run(PixelBuffer(np.zeros((0, 4, 4))))
        assert copies == []

    def test_wrong_channel_count(self):
        result = FilmPipeline().run(PixelBuffer(np.zeros((4, 4, 2))))
        assert isinstance(result.error, InvalidInputError)

    def test_not_a_buffer(self):
        result = FilmPipeline().run(None)
        assert isinstance(result.error, InvalidInputError)

    def test_unwrap_raises(self):
        result = FilmPipeline().run(PixelBuffer(np.zeros((0, 4, 4))))
        with pytest.raises(InvalidInputError, match="Invalid input image"):
            result.unwrap()


class TestStagePolicy:

    def test_degraded_stage_passes_through(self, random_image, caplog):
        preset = CPM35_PRESET.replace(bloom_radius=0.0)
        with caplog.at_level(logging.WARNING):
            result = FilmPipeline(preset).run(random_image, seed=5)

        assert result.state is PipelineState.SUCCEEDED
        assert result.degraded_stages == ["bloom"]
        assert "bloom" in caplog.text

        without_bloom = [s for s in DEFAULT_STAGES if s.name != "bloom"]
        expected = FilmPipeline(preset, stages=without_bloom).apply(random_image, seed=5)
        assert np.array_equal(result.buffer.data, expected.data)

    def test_non_finite_output_degrades(self, random_image):
        def broken(buffer, preset, context):
            return buffer.with_rgb(np.full(buffer.rgb.shape, np.nan))

        result = FilmPipeline(stages=[Stage("broken", broken)]).run(random_image, seed=1)
        assert result.succeeded
        assert result.degraded_stages == ["broken"]
        np.testing.assert_array_equal(result.buffer.data, random_image.data)

    def test_dimension_change_aborts(self, random_image):
        calls = []

        def shrink(buffer, preset, context):
            return PixelBuffer(buffer.data[:-1])

        def record(buffer, preset, context):
            calls.append(buffer)
            return buffer

        result = FilmPipeline(stages=[Stage("shrink", shrink), Stage("after", record)]).run(random_image)
        assert result.state is PipelineState.FAILED
        assert isinstance(result.error, StageFailedError)
        assert result.error.stage == "shrink"
        assert result.buffer is None
        assert calls == []

    def test_unexpected_exception_aborts(self, random_image):
        def explode(buffer, preset, context):
            raise RuntimeError("boom")

        result = FilmPipeline(stages=[Stage("explode", explode)]).run(random_image)
        assert isinstance(result.error, StageFailedError)
        assert result.error.message == "Error applying filter: explode (boom)"

    def test_apply_raises_stage_error(self, random_image):
        def explode(buffer, preset, context):
            raise RuntimeError("boom")

        with pytest.raises(StageFailedError):
            FilmPipeline(stages=[Stage("explode", explode)]).apply(random_image)


class TestCancellation:

    def test_cancel_before_start(self, random_image):
        event = threading.Event()
        event.set()
        result = FilmPipeline().run(random_image, cancel_event=event)
        assert result.state is PipelineState.FAILED
        assert isinstance(result.error, PipelineCancelledError)
        assert result.buffer is None

    def test_cancel_between_stages(self, random_image):
        event = threading.Event()
        calls = []

        def cancel(buffer, preset, context):
            event.set()
            return buffer.copy()

        def record(buffer, preset, context):
            calls.append(buffer)
            return buffer

        stages = [Stage("cancel", cancel), Stage("after", record)]
        result = FilmPipeline(stages=stages).run(random_image, cancel_event=event)
        assert isinstance(result.error, PipelineCancelledError)
        assert [r.stage for r in result.reports] == ["cancel"]
        assert calls == []
        assert result.buffer is None

    def test_run_async_matches_sync(self, random_image):
        pipeline = FilmPipeline()
        result = asyncio.run(pipeline.run_async(random_image, seed=4))
        assert result.succeeded
        assert np.array_equal(result.buffer.data, pipeline.apply(random_image, seed=4).data)

    def test_run_async_cancelled_mid_flight(self, random_image):
        entered = threading.Event()
        release = threading.Event()
        calls = []

        def block(buffer, preset, context):
            entered.set()
            release.wait(timeout=5)
            return buffer.copy()

        def record(buffer, preset, context):
            calls.append(buffer)
            return buffer

        pipeline = FilmPipeline(stages=[Stage("block", block), Stage("after", record)])

        async def scenario():
            task = asyncio.ensure_future(pipeline.run_async(random_image, seed=1))
            await asyncio.get_running_loop().run_in_executor(None, entered.wait, 5)
            task.cancel()
            with pytest.raises(asyncio.CancelledError):
                await task
            release.set()

        asyncio.run(scenario())
        # asyncio.run waits for the executor, so the worker has finished here
        assert calls == []


class TestMidGrayScenario:
    """4x4 mid-gray (0.5, 0.5, 0.5, 1.0) through the default preset."""

    @pytest.fixture
    def output(self, mid_gray):
        return FilmPipeline(CPM35_PRESET).apply(mid_gray, seed=GOLDEN_SEED)

    def test_center_is_warmer(self, output):
        center = output.rgb[1:3, 1:3]
        assert np.all(center[:, :, 0] > 0.5)
        assert np.all(center[:, :, 2] < 0.5)

    def test_center_untouched_by_vignette(self, mid_gray):
        without_vignette = [s for s in DEFAULT_STAGES if s.name != "vignette"]
        full = FilmPipeline(CPM35_PRESET).apply(mid_gray, seed=GOLDEN_SEED)
        partial = FilmPipeline(CPM35_PRESET, stages=without_vignette).apply(mid_gray, seed=GOLDEN_SEED)
        np.testing.assert_array_equal(full.rgb[1:3, 1:3], partial.rgb[1:3, 1:3])
        assert np.all(full.rgb[0, 0] < partial.rgb[0, 0])

    def test_corners_darker_than_center(self, output):
        lum = output.rgb.mean(axis=2)
        corners = lum[[0, 0, -1, -1], [0, -1, 0, -1]].mean()
        center = lum[1:3, 1:3].mean()
        assert corners < center

    def test_alpha_stays_opaque(self, output):
        np.testing.assert_array_equal(output.alpha, 1.0)

    def test_golden_fixture_is_committed(self):
        assert GOLDEN_PATH.is_file(), f"missing golden fixture {GOLDEN_PATH}"

    def test_matches_golden_fixture(self, output):
        golden = np.load(GOLDEN_PATH)
        assert golden.shape == (4, 4, 4)
        np.testing.assert_allclose(output.data, golden, rtol=0, atol=1e-10)
