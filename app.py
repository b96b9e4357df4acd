import io
import re

import streamlit as st
import streamlit.components.v1 as components

import zig_core
from zig_logging import setup_logging

setup_logging()

st.set_page_config(page_title="Zig Blocks", layout="wide")
st.title("Zig Blocks")

# One params dict per session; every control edits it in place
if 'params' not in st.session_state:
    st.session_state.params = zig_core.make_params()
params = st.session_state.params

with st.sidebar:
    st.header("Hatch")
    params['hatch']['spacing'] = st.slider("Spacing", 1.0, 12.0, float(params['hatch']['spacing']), 0.5)
    params['hatch']['jitter'] = st.slider("Jitter", 0.0, 1.0, float(params['hatch']['jitter']), 0.01)
    params['hatch']['weight'] = st.slider("Weight", 0.1, 2.0, float(params['hatch']['weight']), 0.1)
    params['curve']['enabled'] = st.checkbox("Curve", value=params['curve']['enabled'],
                                             help="Wavy hatch strokes instead of straight ones")
    params['curve']['mag'] = st.slider("Curve Magnitude", 0.0, 3.0, float(params['curve']['mag']), 0.1)
    params['curve']['freq'] = st.slider("Curve Frequency", 0.2, 1.0, float(params['curve']['freq']), 0.05)

    st.header("Look")
    alpha = st.slider("Alpha", 10, 255, int(params['alpha']), 1)
    color_mode = st.selectbox("Color Mode", zig_core.COLOR_MODES,
                              index=zig_core.COLOR_MODES.index(params['color_mode']),
                              help="per-shape: every rect and fold gets its own color; "
                                   "per-chain: one color per block")
    fold_buffer = st.slider("Fold Buffer", 0, 40, int(params['conn_angle']['buffer_deg']), 1,
                            help="Keeps fold angles this many degrees away from horizontal/vertical")

    st.header("Scene")
    block_count = st.slider("Blocks (0 = random)", 0, 6, int(params['block_count']))
    seed_text = st.text_input("Seed (blank = random)", "")

    if st.button("Regenerate", type="primary"):
        st.session_state.pop('scene', None)

# Layout settings invalidate the scene; look settings are applied to it in place
if (fold_buffer != params['conn_angle']['buffer_deg']
        or block_count != params['block_count']):
    params['conn_angle']['buffer_deg'] = fold_buffer
    params['block_count'] = block_count
    st.session_state.pop('scene', None)

if 'scene' not in st.session_state:
    params['alpha'] = alpha
    params['color_mode'] = color_mode
    seed = int(seed_text) if seed_text.strip().isdigit() else None
    try:
        st.session_state.scene = zig_core.generate_scene(params, seed=seed)
    except ValueError as exc:
        st.error("Failed to generate scene: {}".format(exc))
        st.stop()

scene = st.session_state.scene

if color_mode != params['color_mode']:
    params['color_mode'] = color_mode
    zig_core.apply_color_mode(scene, params)
if alpha != params['alpha']:
    params['alpha'] = alpha
    zig_core.set_scene_alpha(scene, alpha)

st.caption("Seed {} · {} block(s)".format(scene['seed'], len(scene['blocks'])))

svg_string = zig_core.render_scene_svg(scene, params)
display_svg = re.sub(r'width="\d+"', 'width="100%"', svg_string, count=1)
display_svg = re.sub(r'height="\d+"', 'height="100%"', display_svg, count=1)

html_content = f'''
<div style="background:#f0f0f0; display:flex; align-items:center; justify-content:center;
            padding:20px; box-sizing:border-box;">
    <div style="background:white; box-shadow: 0 2px 8px rgba(0,0,0,0.1); width:100%;">
        {display_svg}
    </div>
</div>
'''
components.html(html_content, height=760, scrolling=True)

col_svg, col_png = st.columns(2)
col_svg.download_button(
    "Download SVG",
    svg_string,
    file_name=zig_core.DEFAULT_SVG_NAME,
    mime="image/svg+xml"
)

# Rasterizing is slow; only do it on request and keep it while the strokes are unchanged
if col_png.button("Render PNG"):
    png_buffer = io.BytesIO()
    zig_core.render_scene_image(scene, params).save(png_buffer, format="PNG")
    st.session_state.png = (svg_string, png_buffer.getvalue())

png = st.session_state.get('png')
if png and png[0] == svg_string:
    col_png.download_button(
        "Download PNG",
        png[1],
        file_name=zig_core.DEFAULT_PNG_NAME,
        mime="image/png"
    )
