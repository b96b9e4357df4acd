from pathlib import Path

from streamlit.testing.v1 import AppTest

ROOT = Path(__file__).resolve().parent.parent


def _app():
    return AppTest.from_file(str(ROOT / "app.py"), default_timeout=120)


def test_png_is_rendered_only_on_request():
    at = _app().run()
    assert not at.exception
    assert 'png' not in at.session_state

    render = next(b for b in at.button if b.label == "Render PNG")
    render.click().run()
    assert not at.exception
    _, data = at.session_state['png']
    assert data.startswith(b'\x89PNG')


def test_streamlit_script_is_not_installed_as_a_module():
    text = (ROOT / "pyproject.toml").read_text(encoding="utf-8")
    modules = next(line for line in text.splitlines() if line.startswith("py-modules"))
    assert '"app"' not in modules
