import random

import pytest

import zig_core


@pytest.fixture
def rng():
    return random.Random(1234)


@pytest.fixture
def params():
    return zig_core.make_params()


@pytest.fixture
def small_params():
    """A small canvas so raster tests stay quick."""
    return zig_core.make_params({
        'canvas': (400, 300),
        'margin': 10,
        'w_range': (60, 80),
        'h_range': (30, 40),
        'off_x_range': (-80, 80),
        'off_y_range': (-80, 80),
        'block_count': 2,
        'hatch': {'spacing': 4.0},
    })


@pytest.fixture
def unit_square():
    return [(0.0, 0.0), (1.0, 0.0), (1.0, 1.0), (0.0, 1.0)]
