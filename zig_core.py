import copy
import logging
import math
import random

import drawsvg as draw
from PIL import Image, ImageChops, ImageColor, ImageDraw
from shapely.geometry import LineString, Polygon
from shapely.ops import unary_union

logger = logging.getLogger("zigblocks.core")


class LayoutError(ValueError):
    """A chain cannot be placed inside the canvas margins."""


# ============================================================================
# PARAMETERS
# ============================================================================

# Print-like palette for block colors
PALETTE = ['#c85a5a', '#6aa6d1', '#d1a86a', '#6ad1a2', '#8f79c8']

COLOR_MODES = ('per-shape', 'per-chain')

DEFAULT_PARAMS = {
    'canvas': (1200, 900),
    'block_count': 0,             # 0 => random 1..6
    'zig_choices': (3, 5, 7),     # segments per block (rects + connectors)
    'w_range': (200, 340),        # shared rect width per block
    'h_range': (90, 140),         # shared rect height per block
    'off_x_range': (-260, 260),   # connector offset extents
    'off_y_range': (-320, 320),
    'margin': 60,
    'hatch': {'spacing': 3.5, 'jitter': 0.4, 'weight': 0.6},
    'rect_rule': {'mean_deg': 0, 'jitter_deg': 55, 'clamp_deg': 80, 'min_sep_deg': 10},
    'conn_rule': {'jitter_deg': 6},
    'conn_angle': {'buffer_deg': 20, 'step_deg': 10},
    'fold_bias': {'first': 0.9, 'rest': 0.75},
    'stroke': '#1a1a1a',
    'alpha': 255,
    'color_mode': 'per-shape',
    'curve': {'enabled': True, 'mag': 1.0, 'freq': 0.5},
    'palette': PALETTE,
    'max_layout_attempts': 50,
}


def make_params(overrides=None):
    """Return a fresh, validated params dict.

    Nested dict values (hatch, curve, ...) are merged key by key so callers
    can override a single setting, e.g. ``{'hatch': {'spacing': 5}}``.
    """
    params = copy.deepcopy(DEFAULT_PARAMS)
    for key, value in (overrides or {}).items():
        if key not in params:
            raise ValueError("Unknown parameter: {!r}".format(key))
        if isinstance(params[key], dict) and isinstance(value, dict):
            params[key].update(value)
        else:
            params[key] = copy.deepcopy(value)
    validate_params(params)
    return params


def _check_range(name, rng_pair):
    lo, hi = rng_pair
    if lo > hi:
        raise ValueError("{} is inverted: {!r}".format(name, rng_pair))


def validate_params(params):
    """Raise ValueError if params cannot drive generation or drawing."""
    hatch = params['hatch']
    if hatch['spacing'] <= 0:
        raise ValueError("hatch spacing must be > 0, got {}".format(hatch['spacing']))
    if hatch['jitter'] < 0:
        raise ValueError("hatch jitter must be >= 0, got {}".format(hatch['jitter']))
    if hatch['weight'] <= 0:
        raise ValueError("hatch weight must be > 0, got {}".format(hatch['weight']))
    if params['color_mode'] not in COLOR_MODES:
        raise ValueError("color_mode must be one of {}, got {!r}".format(
            COLOR_MODES, params['color_mode']))
    if not 0 <= params['alpha'] <= 255:
        raise ValueError("alpha must be in 0..255, got {}".format(params['alpha']))
    if params['conn_angle']['step_deg'] <= 0:
        raise ValueError("conn_angle step_deg must be > 0")
    if not params['zig_choices']:
        raise ValueError("zig_choices is empty")
    for segments in params['zig_choices']:
        rect_count_for_segments(segments)
    if not params['palette']:
        raise ValueError("palette is empty")
    for name in ('w_range', 'h_range', 'off_x_range', 'off_y_range'):
        _check_range(name, params[name])
    if params['h_range'][0] <= 0 or params['w_range'][0] <= 0:
        raise ValueError("rect sizes must be positive")
    if params['margin'] < 0:
        raise ValueError("margin must be >= 0")
    if params['block_count'] < 0:
        raise ValueError("block_count must be >= 0")
    if params['max_layout_attempts'] < 1:
        raise ValueError("max_layout_attempts must be >= 1")


# ============================================================================
# GEOMETRY KERNEL
# ============================================================================

PARALLEL_EPS = 1e-12


def _clamp(v, lo, hi):
    return max(lo, min(hi, v))


def _dot(a, b):
    return a[0] * b[0] + a[1] * b[1]


def unit_normal(dx, dy):
    """Left-hand unit normal of (dx, dy); a zero vector keeps length 1."""
    length = math.hypot(dx, dy) or 1.0
    return (-dy / length, dx / length)


def angle_diff(a, b):
    """Shortest signed angular difference a - b, in radians."""
    return math.atan2(math.sin(a - b), math.cos(a - b))


def seg_intersect_t(p, q, a, b, eps=PARALLEL_EPS):
    """Parameter t along PQ where it crosses segment AB, or None.

    Parallel and collinear segments report no intersection.
    """
    rx, ry = q[0] - p[0], q[1] - p[1]
    sx, sy = b[0] - a[0], b[1] - a[1]
    den = rx * sy - ry * sx
    if abs(den) < eps:
        return None
    ax, ay = a[0] - p[0], a[1] - p[1]
    t = (ax * sy - ay * sx) / den
    u = (ax * ry - ay * rx) / den
    if 0 <= t <= 1 and 0 <= u <= 1:
        return t
    return None


def is_convex_polygon(poly):
    """True if poly is a valid polygon equal to its own convex hull."""
    shape = Polygon(poly)
    if not shape.is_valid or shape.is_empty:
        return False
    hull_area = shape.convex_hull.area
    return hull_area - shape.area <= 1e-9 * max(1.0, hull_area)


# ============================================================================
# HATCH ENGINE
# ============================================================================

HATCH_HALF_LENGTH = 5000   # construction lines are 10,000 units long
WAVE_STEPS = 8
PARAM_MERGE_EPS = 1e-9


def hatch_line_range(poly, angle, spacing):
    """Return (min_k, count, direction, normal) for the hatch lines of poly.

    Lines sit at offsets k * spacing along the normal and cover the
    projection of poly padded by two spacings on each side.
    """
    direction = (math.cos(angle), math.sin(angle))
    normal = unit_normal(direction[0], direction[1])
    projections = [_dot(normal, p) for p in poly]
    min_proj, max_proj = min(projections), max(projections)
    pad = 2 * spacing
    min_k = math.floor((min_proj - pad) / spacing)
    count = math.ceil((max_proj - min_proj + 2 * pad) / spacing) + 1
    return min_k, count, direction, normal


def hatch_line(k, spacing, direction, normal):
    off = k * spacing
    cx, cy = off * normal[0], off * normal[1]
    p0 = (cx - HATCH_HALF_LENGTH * direction[0], cy - HATCH_HALF_LENGTH * direction[1])
    p1 = (cx + HATCH_HALF_LENGTH * direction[0], cy + HATCH_HALF_LENGTH * direction[1])
    return p0, p1


def line_polygon_params(p0, p1, poly):
    """Sorted parameters where segment p0-p1 crosses the edges of poly.

    A crossing through a shared vertex is reported once.
    """
    ts = []
    n = len(poly)
    for i in range(n):
        t = seg_intersect_t(p0, p1, poly[i], poly[(i + 1) % n])
        if t is not None:
            ts.append(t)
    ts.sort()
    merged = []
    for t in ts:
        if merged and t - merged[-1] < PARAM_MERGE_EPS:
            continue
        merged.append(t)
    return merged


def _lerp(p0, p1, t):
    return (p0[0] + (p1[0] - p0[0]) * t, p0[1] + (p1[1] - p0[1]) * t)


def _clip_line_to_shape(p0, p1, shape):
    """Clip a construction line to a shapely polygon; list of (start, end)."""
    clipped = LineString([p0, p1]).intersection(shape)
    if clipped.is_empty:
        return []
    if clipped.geom_type == 'LineString':
        parts = [clipped]
    else:
        parts = [g for g in clipped.geoms if g.geom_type == 'LineString']
    result = []
    for part in parts:
        coords = list(part.coords)
        if len(coords) >= 2:
            result.append((tuple(coords[0]), tuple(coords[-1])))
    return result


def hatch_polygon(poly, angle, spacing, jitter=0.0, rng=None):
    """Fill poly with parallel chords at angle (radians).

    Returns a list of ((ax, ay), (bx, by)) chords. Convex polygons use
    even-odd pairing of the sorted edge crossings; anything else is clipped
    with shapely. With jitter > 0 each chord is translated by one Gaussian
    (jx, jy) offset.
    """
    if len(poly) < 3:
        raise ValueError("polygon needs at least 3 vertices, got {}".format(len(poly)))
    if spacing <= 0:
        raise ValueError("spacing must be > 0, got {}".format(spacing))
    if jitter and rng is None:
        rng = random.Random()

    shape = None
    if not is_convex_polygon(poly):
        shape = Polygon(poly).buffer(0)
        if shape.is_empty:
            return []

    min_k, count, direction, normal = hatch_line_range(poly, angle, spacing)
    chords = []
    for k in range(min_k, min_k + count):
        p0, p1 = hatch_line(k, spacing, direction, normal)
        if shape is None:
            ts = line_polygon_params(p0, p1, poly)
            spans = [(_lerp(p0, p1, ts[i]), _lerp(p0, p1, ts[i + 1]))
                     for i in range(0, len(ts) - 1, 2)]
        else:
            spans = _clip_line_to_shape(p0, p1, shape)
        for a, b in spans:
            if jitter:
                jx, jy = rng.gauss(0, jitter), rng.gauss(0, jitter)
                a = (a[0] + jx, a[1] + jy)
                b = (b[0] + jx, b[1] + jy)
            chords.append((a, b))
    return chords


def chord_path(a, b, curve, rng):
    """Points of the stroke drawn for chord a-b.

    Straight mode returns [a, b]. Wave mode subdivides the chord and pushes
    interior points along its normal; wobble tapers on chords under 30 units.
    """
    if not curve.get('enabled'):
        return [a, b]
    dx, dy = b[0] - a[0], b[1] - a[1]
    length = math.hypot(dx, dy) or 1.0
    nx, ny = -dy / length, dx / length
    phase = rng.random() * 2 * math.pi
    scale = _clamp(length / 30.0, 0.0, 1.0)
    amp = curve['mag'] * scale
    freq = curve['freq'] * scale + 0.0001
    points = [a]
    for i in range(1, WAVE_STEPS):
        t = i / WAVE_STEPS
        off = math.sin(phase + t * freq * 2 * math.pi) * amp
        points.append((a[0] + dx * t + nx * off, a[1] + dy * t + ny * off))
    points.append(b)
    return points


def connector_hatch_angle(angle_a, angle_b, jitter_deg, rng):
    """Circular mean of two neighbouring rect angles plus Gaussian jitter."""
    base = math.atan2(math.sin(angle_a) + math.sin(angle_b),
                      math.cos(angle_a) + math.cos(angle_b))
    if jitter_deg:
        base += math.radians(rng.gauss(0, jitter_deg))
    return base


# ============================================================================
# ANGLE / OFFSET SAMPLING
# ============================================================================

MAX_SEPARATION_TRIES = 40
DEFAULT_FOLD_BIAS = 0.75   # 3:1 in favour of upward folds
MAX_FOLD_TRIES = 40


def sample_shape_angle(params, rng):
    rule = params['rect_rule']
    clamp_deg = rule.get('clamp_deg', 90)
    deg = _clamp(rule['mean_deg'] + rng.gauss(0, rule['jitter_deg']), -clamp_deg, clamp_deg)
    return math.radians(deg)


def sample_chain_angles(count, params, rng):
    """Draw count hatch angles, keeping neighbours min_sep_deg apart when possible."""
    min_sep = math.radians(params['rect_rule'].get('min_sep_deg', 0))
    angles = []
    for _ in range(count):
        tries = 0
        while True:
            angle = sample_shape_angle(params, rng)
            tries += 1
            if not angles or abs(angle_diff(angle, angles[-1])) >= min_sep:
                break
            if tries >= MAX_SEPARATION_TRIES:
                logger.debug("Angle separation not met after %d tries; keeping %.3f rad",
                             tries, angle)
                break
        angles.append(angle)
    return angles


def connector_angle_choices(params):
    """Discrete fold magnitudes (degrees) between the buffer and 90 - buffer."""
    cfg = params['conn_angle']
    step = cfg.get('step_deg', 10)
    min_deg = _clamp(cfg.get('buffer_deg', 20), 0, 89)
    max_deg = _clamp(90 - cfg.get('buffer_deg', 20), min_deg, 90)
    choices = []
    i = 0
    while min_deg + i * step <= max_deg + 1e-3:
        choices.append(min_deg + i * step)
        i += 1
    return choices


def sample_connector_angle(params, rng, bias_positive=None):
    """Fold direction in radians, measured y-up (quadrants I/II point up the canvas)."""
    choices = connector_angle_choices(params)
    base = rng.choice(choices) if choices else 45.0
    if bias_positive is None:
        bias_positive = DEFAULT_FOLD_BIAS
    if rng.random() < bias_positive:
        deg = base if rng.random() < 0.5 else 180 - base
    else:
        deg = 180 + base if rng.random() < 0.5 else 360 - base
    return math.radians(deg)


def _fold_length_limit(cos_a, sin_a, params):
    """Longest fold along (cos_a, sin_a) the offset extents allow; 0 if none."""
    off_x, off_y = params['off_x_range'], params['off_y_range']
    limits = []
    if abs(cos_a) > 1e-4:
        reach = off_x[1] if cos_a > 0 else -off_x[0]
        limits.append(max(0.0, reach) / abs(cos_a))
    # canvas y grows downward: an upward fold has negative dy
    if abs(sin_a) > 1e-4:
        reach = -off_y[0] if sin_a > 0 else off_y[1]
        limits.append(max(0.0, reach) / abs(sin_a))
    return min(limits) if limits else 150.0


def sample_fold_offset(rect_h, params, rng, bias_positive=None):
    """Sample a (dx, dy) canvas offset from one rect anchor to the next.

    The length is bounded by the offset extents along the sampled direction
    and by [0.5, 2.5] * rect_h. Directions the extents forbid are resampled.
    """
    for _ in range(MAX_FOLD_TRIES):
        angle = sample_connector_angle(params, rng, bias_positive)
        cos_a, sin_a = math.cos(angle), math.sin(angle)
        max_len = _fold_length_limit(cos_a, sin_a, params)
        if max_len > 0:
            break
    else:
        raise LayoutError("offset ranges {} x {} leave no fold direction".format(
            params['off_x_range'], params['off_y_range']))

    target_min = rect_h * 0.5
    target_max = rect_h * 2.5
    max_len = min(max_len, target_max)
    min_len = min(max(target_min, 40.0), max_len)
    length = rng.uniform(min_len, max_len)
    return (length * cos_a, -length * sin_a)


# ============================================================================
# SHAPES
# ============================================================================

def make_rect(origin, width, height):
    return {'origin': (float(origin[0]), float(origin[1])), 'width': width, 'height': height}


def rect_corners(rect):
    """[bottom-left, bottom-right, top-right, top-left]; top is origin.y - height."""
    x, y = rect['origin']
    w, h = rect['width'], rect['height']
    return [(x, y), (x + w, y), (x + w, y - h), (x, y - h)]


def rect_polygon(rect):
    return rect_corners(rect)


def connector_polygon(rect_a, rect_b):
    """Parallelogram from the top edge of rect_a to the bottom edge of rect_b."""
    _, _, a_tr, a_tl = rect_corners(rect_a)
    b_bl, b_br, _, _ = rect_corners(rect_b)
    return [a_tr, a_tl, b_bl, b_br]


# ============================================================================
# COLORS
# ============================================================================

def make_color(hex_color, alpha=255):
    r, g, b = ImageColor.getrgb(hex_color)[:3]
    return (r, g, b, int(alpha))


def build_colors(rect_count, conn_count, params, rng):
    """Per-shape: every rect and connector draws its own palette color.
    Per-chain: one color object is shared by the whole block.
    """
    palette = params['palette']
    alpha = params['alpha']
    if params['color_mode'] == 'per-shape':
        return {
            'rects': [make_color(rng.choice(palette), alpha) for _ in range(rect_count)],
            'connectors': [make_color(rng.choice(palette), alpha) for _ in range(conn_count)],
        }
    color = make_color(rng.choice(palette), alpha)
    return {'rects': [color] * rect_count, 'connectors': [color] * conn_count}


def apply_color_mode(scene, params, rng=None):
    """Reassign every block's colors for the current color mode; geometry is kept."""
    rng = rng or random.Random()
    for block in scene['blocks']:
        rect_count = len(block['rects'])
        block['colors'] = build_colors(rect_count, max(0, rect_count - 1), params, rng)
    logger.debug("Applied color mode %r to %d block(s)", params['color_mode'], len(scene['blocks']))


def set_block_alpha(block, alpha):
    """Set the alpha of every stored color of block. Shared colors stay shared."""
    alpha = int(alpha)
    if not 0 <= alpha <= 255:
        raise ValueError("alpha must be in 0..255, got {}".format(alpha))
    updated = {}

    def _with_alpha(color):
        key = id(color)
        if key not in updated:
            updated[key] = tuple(color[:3]) + (alpha,)
        return updated[key]

    colors = block['colors']
    colors['rects'] = [_with_alpha(c) for c in colors['rects']]
    colors['connectors'] = [_with_alpha(c) for c in colors['connectors']]


def set_scene_alpha(scene, alpha):
    for block in scene['blocks']:
        set_block_alpha(block, alpha)


# ============================================================================
# GENERATION
# ============================================================================

def rect_count_for_segments(segments):
    """3/5/7 segments -> 2/3/4 rects (rects and connectors alternate)."""
    if segments < 3 or segments % 2 == 0:
        raise ValueError("segment count must be odd and >= 3, got {}".format(segments))
    return (segments + 1) // 2


def make_block(rects, offsets, angles, colors, stroke, draw_seed):
    n = len(rects)
    if len(angles) != n:
        raise ValueError("expected {} angles, got {}".format(n, len(angles)))
    if len(offsets) != n - 1:
        raise ValueError("expected {} fold offsets, got {}".format(n - 1, len(offsets)))
    if len(colors['rects']) != n or len(colors['connectors']) != n - 1:
        raise ValueError("color counts do not match {} rects".format(n))
    return {
        'rects': list(rects),
        'offsets': [tuple(o) for o in offsets],
        'angles': list(angles),
        'colors': colors,
        'stroke': stroke,
        'draw_seed': draw_seed,
    }


def chain_extents(width, height, offsets):
    """(min_x, min_y, max_x, max_y) of the chain in local coords.

    The first rect has its bottom-left at the origin.
    """
    x = y = 0.0
    min_x, max_x, min_y, max_y = 0.0, width, -height, 0.0
    for dx, dy in offsets:
        x += dx
        y += dy
        min_x = min(min_x, x)
        max_x = max(max_x, x + width)
        min_y = min(min_y, y - height)
        max_y = max(max_y, y)
    return min_x, min_y, max_x, max_y


def place_chain(extents, canvas, margin, rng):
    """Random anchor keeping the whole chain inside [margin, size - margin]."""
    min_x, min_y, max_x, max_y = extents
    canvas_w, canvas_h = canvas
    lo_x, hi_x = margin - min_x, canvas_w - margin - max_x
    lo_y, hi_y = margin - min_y, canvas_h - margin - max_y
    if lo_x > hi_x or lo_y > hi_y:
        raise LayoutError(
            "chain of {:.0f}x{:.0f} does not fit a {}x{} canvas with margin {}".format(
                max_x - min_x, max_y - min_y, canvas_w, canvas_h, margin))
    return rng.uniform(lo_x, hi_x), rng.uniform(lo_y, hi_y)


def build_chain(width, height, offsets, params, rng):
    """Place congruent rects linked by offsets and dress them as a block."""
    extents = chain_extents(width, height, offsets)
    x, y = place_chain(extents, params['canvas'], params['margin'], rng)

    rects = [make_rect((x, y), width, height)]
    for dx, dy in offsets:
        x += dx
        y += dy
        rects.append(make_rect((x, y), width, height))

    angles = sample_chain_angles(len(rects), params, rng)
    colors = build_colors(len(rects), len(offsets), params, rng)
    return make_block(rects, offsets, angles, colors,
                      stroke=make_color(params['stroke'], 255),
                      draw_seed=rng.getrandbits(32))


def make_zig_block(params, rng, segments=None):
    """Generate one block, resampling size and folds until it fits the canvas."""
    attempts = params['max_layout_attempts']
    last_error = None
    for attempt in range(1, attempts + 1):
        width = rng.uniform(*params['w_range'])
        height = rng.uniform(*params['h_range'])
        seg_count = segments if segments is not None else rng.choice(params['zig_choices'])
        rect_count = rect_count_for_segments(seg_count)

        offsets = []
        for k in range(rect_count - 1):
            bias = params['fold_bias']['first'] if k == 0 else params['fold_bias']['rest']
            offsets.append(sample_fold_offset(height, params, rng, bias))

        try:
            block = build_chain(width, height, offsets, params, rng)
        except LayoutError as exc:
            last_error = exc
            logger.debug("Layout attempt %d/%d failed: %s", attempt, attempts, exc)
            continue
        logger.debug("Block with %d rects placed on attempt %d", rect_count, attempt)
        return block

    logger.warning("No layout found after %d attempts", attempts)
    raise last_error


def generate_scene(params, seed=None):
    """Build a whole scene. The same seed and params give the same scene."""
    if seed is None:
        seed = random.randrange(2 ** 32)
    rng = random.Random(seed)
    count = params['block_count'] if params['block_count'] > 0 else rng.randint(1, 6)
    blocks = [make_zig_block(params, rng) for _ in range(count)]
    canvas_w, canvas_h = params['canvas']
    logger.info("Generated scene (seed=%d) with %d block(s)", seed, count)
    return {'width': canvas_w, 'height': canvas_h, 'seed': seed, 'blocks': blocks}


def block_polygons(block):
    """(kind, index, polygon) for every rect then every connector."""
    rects = block['rects']
    shapes = [('rect', i, rect_polygon(r)) for i, r in enumerate(rects)]
    shapes.extend(('connector', i, connector_polygon(rects[i], rects[i + 1]))
                  for i in range(len(rects) - 1))
    return shapes


def block_footprint(block):
    """Shapely union of every rect and connector of block."""
    return unary_union([Polygon(poly).buffer(0) for _, _, poly in block_polygons(block)])


# ============================================================================
# COMPOSITING
# ============================================================================

DEFAULT_PNG_NAME = 'zig_blocks_hatched.png'
DEFAULT_SVG_NAME = 'zig_blocks_hatched.svg'


def block_hatch_passes(block, params):
    """Strokes of one block, grouped per shape, in draw order.

    Random draws (jitter, wave phase, connector angle) come from the block's
    own draw seed, so every surface receives identical strokes.
    """
    rng = random.Random(block['draw_seed'])
    hatch = params['hatch']
    curve = params['curve']
    angles = block['angles']
    colors = block['colors']

    passes = []
    for kind, i, poly in block_polygons(block):
        if kind == 'rect':
            angle = angles[i]
            color = colors['rects'][i]
        else:
            angle = connector_hatch_angle(angles[i], angles[i + 1],
                                          params['conn_rule']['jitter_deg'], rng)
            color = colors['connectors'][i]
        chords = hatch_polygon(poly, angle, hatch['spacing'], hatch['jitter'], rng)
        paths = [chord_path(a, b, curve, rng) for a, b in chords]
        passes.append({'kind': kind, 'index': i, 'color': color or block['stroke'],
                       'paths': paths})
    return passes


def _svg_color(color):
    r, g, b, a = color
    return '#{:02x}{:02x}{:02x}'.format(r, g, b), round(a / 255.0, 4)


def render_block_group(block, params, index=0):
    """One block as an SVG group composited with multiply."""
    stroke, _ = _svg_color(block['stroke'])
    group = draw.Group(id='block-{}'.format(index), fill='none', stroke=stroke,
                       stroke_width=params['hatch']['weight'], stroke_linecap='butt',
                       style='mix-blend-mode:multiply')
    for hatch_pass in block_hatch_passes(block, params):
        color, opacity = _svg_color(hatch_pass['color'])
        shape_group = draw.Group(
            id='block-{}-{}-{}'.format(index, hatch_pass['kind'], hatch_pass['index']),
            stroke=color, stroke_opacity=opacity)
        for points in hatch_pass['paths']:
            if len(points) == 2:
                (x1, y1), (x2, y2) = points
                shape_group.append(draw.Line(x1, y1, x2, y2))
            else:
                path = draw.Path()
                path.M(*points[0])
                for x, y in points[1:]:
                    path.L(x, y)
                shape_group.append(path)
        group.append(shape_group)
    return group


def build_scene_drawing(scene, params):
    d = draw.Drawing(scene['width'], scene['height'])
    d.append(draw.Rectangle(0, 0, scene['width'], scene['height'], fill='white'))
    for i, block in enumerate(scene['blocks']):
        d.append(render_block_group(block, params, i))
    return d


def render_scene_svg(scene, params):
    """Render a scene to SVG text; chords stay true vector paths."""
    return build_scene_drawing(scene, params).as_svg()


def render_block_layer(block, params, size, scale=1.0):
    """Draw one block into a transparent RGBA layer of the given pixel size.

    Each shape is stroked on its own scratch image and laid over the layer
    source-over, so overlapping translucent ink builds up as it does in SVG.
    """
    layer = Image.new('RGBA', size, (0, 0, 0, 0))
    width = max(1, int(round(params['hatch']['weight'] * scale)))
    for hatch_pass in block_hatch_passes(block, params):
        if not hatch_pass['paths']:
            continue
        fill = tuple(hatch_pass['color'])
        scratch = Image.new('RGBA', size, (0, 0, 0, 0))
        ctx = ImageDraw.Draw(scratch)
        for points in hatch_pass['paths']:
            ctx.line([(x * scale, y * scale) for x, y in points], fill=fill, width=width)
        layer = Image.alpha_composite(layer, scratch)
    return layer


def blend_multiply(base, layer):
    """Composite layer onto base so that overlapping ink darkens."""
    if base.mode != 'RGBA':
        base = base.convert('RGBA')
    if layer.mode != 'RGBA':
        layer = layer.convert('RGBA')
    mixed = ImageChops.multiply(base.convert('RGB'), layer.convert('RGB')).convert('RGBA')
    mixed.putalpha(layer.split()[-1])
    return Image.alpha_composite(base, mixed)


def render_scene_image(scene, params, scale=1.0):
    """Rasterize a scene: one isolated layer per block, multiplied in order."""
    size = (int(round(scene['width'] * scale)), int(round(scene['height'] * scale)))
    image = Image.new('RGBA', size, (255, 255, 255, 255))
    for block in scene['blocks']:
        image = blend_multiply(image, render_block_layer(block, params, size, scale))
    return image.convert('RGB')


def save_svg(scene, params, path=DEFAULT_SVG_NAME):
    build_scene_drawing(scene, params).save_svg(str(path))
    logger.info("Saved SVG: %s", path)
    return path


def save_png(scene, params, path=DEFAULT_PNG_NAME, scale=1.0):
    render_scene_image(scene, params, scale).save(str(path))
    logger.info("Saved PNG: %s", path)
    return path
