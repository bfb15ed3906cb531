import numpy as np
import pytest

from film_emulation.constants import TONE_CURVE_POINTS
from film_emulation.curves import ToneCurve


@pytest.fixture
def curve() -> ToneCurve:
    return ToneCurve(TONE_CURVE_POINTS)


class TestDefaultCurve:

    def test_midtone_anchor_is_exact(self, curve):
        assert curve(0.5) == 0.5

    @pytest.mark.parametrize("x, expected", [
        (0.0, 0.05),
        (0.25, 0.23),
        (0.75, 0.78),
        (1.0, 0.95),
    ])
    def test_passes_through_control_points(self, curve, x, expected):
        assert curve(x) == pytest.approx(expected, abs=1e-12)

    def test_monotone_non_decreasing(self, curve):
        xs = np.linspace(0.0, 1.0, 10001)
        ys = curve(xs)
        assert np.all(np.diff(ys) >= 0.0)

    def test_no_overshoot_between_points(self, curve):
        for (x0, y0), (x1, y1) in zip(TONE_CURVE_POINTS, TONE_CURVE_POINTS[1:]):
            ys = curve(np.linspace(x0, x1, 101))
            assert ys.min() >= y0 - 1e-12
            assert ys.max() <= y1 + 1e-12

    def test_lifts_blacks_and_softens_highlights(self, curve):
        assert curve(0.0) > 0.0
        assert curve(1.0) < 1.0

    def test_input_is_clamped(self, curve):
        assert curve(-1.0) == pytest.approx(0.05)
        assert curve(2.0) == pytest.approx(0.95)

    def test_array_shape_preserved(self, curve):
        img = np.random.default_rng(3).random((4, 5, 3))
        assert curve(img).shape == (4, 5, 3)


class TestCurveShapes:

    def test_identity_curve(self):
        identity = ToneCurve([(0.0, 0.0), (0.25, 0.25), (0.5, 0.5), (0.75, 0.75), (1.0, 1.0)])
        xs = np.linspace(0.0, 1.0, 257)
        np.testing.assert_allclose(identity(xs), xs, atol=1e-12)

    def test_flat_segment_stays_flat(self):
        flat = ToneCurve([(0.0, 0.0), (0.25, 0.5), (0.5, 0.5), (0.75, 0.5), (1.0, 1.0)])
        ys = flat(np.linspace(0.25, 0.75, 51))
        np.testing.assert_allclose(ys, 0.5, atol=1e-12)

    def test_steep_curve_is_monotone(self):
        steep = ToneCurve([(0.0, 0.0), (0.1, 0.6), (0.5, 0.65), (0.9, 0.7), (1.0, 1.0)])
        ys = steep(np.linspace(0.0, 1.0, 5001))
        assert np.all(np.diff(ys) >= 0.0)


class TestCurveValidation:

    def test_requires_five_points(self):
        with pytest.raises(ValueError):
            ToneCurve([(0.0, 0.0), (0.5, 0.5), (1.0, 1.0)])

    def test_requires_increasing_x(self):
        with pytest.raises(ValueError):
            ToneCurve([(0.0, 0.0), (0.5, 0.2), (0.4, 0.5), (0.75, 0.7), (1.0, 1.0)])

    def test_requires_anchored_endpoints(self):
        with pytest.raises(ValueError):
            ToneCurve([(0.1, 0.0), (0.25, 0.2), (0.5, 0.5), (0.75, 0.7), (1.0, 1.0)])

    def test_requires_y_in_range(self):
        with pytest.raises(ValueError):
            ToneCurve([(0.0, 0.0), (0.25, 0.2), (0.5, 1.5), (0.75, 0.7), (1.0, 1.0)])
