import math
import random

import pytest

import zig_core
from zig_core import (
    angle_diff,
    connector_angle_choices,
    sample_chain_angles,
    sample_connector_angle,
    sample_fold_offset,
    sample_shape_angle,
)


def test_shape_angles_are_clamped(params, rng):
    limit = math.radians(params['rect_rule']['clamp_deg'])
    for _ in range(500):
        assert -limit - 1e-12 <= sample_shape_angle(params, rng) <= limit + 1e-12


def test_shape_angle_without_jitter_is_the_mean(rng):
    params = zig_core.make_params({'rect_rule': {'mean_deg': 30, 'jitter_deg': 0}})
    assert sample_shape_angle(params, rng) == pytest.approx(math.radians(30))


def test_chain_angles_keep_their_distance(params):
    rng = random.Random(7)
    min_sep = math.radians(params['rect_rule']['min_sep_deg'])
    for _ in range(50):
        angles = sample_chain_angles(4, params, rng)
        assert len(angles) == 4
        for prev, cur in zip(angles, angles[1:]):
            assert abs(angle_diff(cur, prev)) >= min_sep - 1e-12


def test_chain_angles_accept_the_last_candidate_when_retries_run_out(rng):
    params = zig_core.make_params({'rect_rule': {'mean_deg': 15, 'jitter_deg': 0, 'min_sep_deg': 10}})
    angles = sample_chain_angles(3, params, rng)
    assert angles == pytest.approx([math.radians(15)] * 3)


def test_connector_angle_choices(params):
    assert connector_angle_choices(params) == pytest.approx([20, 30, 40, 50, 60, 70])
    narrow = zig_core.make_params({'conn_angle': {'buffer_deg': 45}})
    assert connector_angle_choices(narrow) == pytest.approx([45])


def _folded_degrees(angle):
    deg = math.degrees(angle) % 360
    return min(deg % 180, 180 - deg % 180)


def test_connector_angle_respects_bias_and_choices(params, rng):
    choices = connector_angle_choices(params)
    for _ in range(200):
        up = sample_connector_angle(params, rng, bias_positive=1.0)
        assert math.sin(up) > 0
        assert min(abs(_folded_degrees(up) - c) for c in choices) < 1e-6
        down = sample_connector_angle(params, rng, bias_positive=0.0)
        assert math.sin(down) < 0


def test_connector_angle_default_bias_favours_upward_folds(params):
    rng = random.Random(11)
    ups = sum(math.sin(sample_connector_angle(params, rng)) > 0 for _ in range(2000))
    assert 0.68 < ups / 2000 < 0.82


def test_fold_offsets_stay_in_range(params, rng):
    for rect_h in (90, 115, 140):
        for _ in range(200):
            dx, dy = sample_fold_offset(rect_h, params, rng)
            length = math.hypot(dx, dy)
            assert 0 < length <= rect_h * 2.5 + 1e-9
            assert length >= min(rect_h * 0.5, 40) - 1e-9
            assert abs(dx) <= 260 + 1e-9
            assert abs(dy) <= 320 + 1e-9


def test_upward_fold_has_negative_dy(params, rng):
    for _ in range(100):
        _, dy = sample_fold_offset(110, params, rng, bias_positive=1.0)
        assert dy < 0
        _, dy = sample_fold_offset(110, params, rng, bias_positive=0.0)
        assert dy > 0


def test_fold_offsets_never_leave_a_one_sided_range(rng):
    params = zig_core.make_params({'off_x_range': (0, 260)})
    for _ in range(300):
        dx, dy = sample_fold_offset(110, params, rng)
        assert 0 < dx <= 260 + 1e-9
        assert abs(dy) <= 320 + 1e-9


def test_fold_offset_with_no_allowed_direction_is_a_layout_error(rng):
    params = zig_core.make_params({'off_x_range': (0, 0)})
    with pytest.raises(zig_core.LayoutError):
        sample_fold_offset(110, params, rng)
