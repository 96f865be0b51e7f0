import pytest

from mockup_automation.config import Settings
from mockup_automation.models import ColorKey

from fakes import make_png


@pytest.fixture
def templates_dir(tmp_path):
    """Template folder holding every base colour and the emboss reference."""
    folder = tmp_path / "templates"
    for color in ColorKey:
        make_png(folder / f"{color.value}.png", color="blue")
    make_png(folder / "bluedog.png", color="navy")
    return folder


@pytest.fixture
def output_dir(tmp_path):
    folder = tmp_path / "output"
    folder.mkdir()
    return folder


@pytest.fixture
def fast_settings(tmp_path, templates_dir, output_dir):
    """Settings with every wait shrunk so the state machine runs instantly."""
    return Settings(
        app_url="https://chatgpt.com/",
        profile_dir=tmp_path / "profile",
        templates_dir=templates_dir,
        output_dir=output_dir,
        headless=True,
        lookup_base_url="https://lookup.test/rest/v1",
        lookup_api_key="test-key",
        login_timeout=0.05,
        composer_timeout=0.05,
        generation_timeout=0.05,
        probe_timeout=0.01,
        poll_interval=0.01,
        page_settle=0,
        upload_settle=0,
        paste_settle=0,
        result_settle=0,
        request_timeout=5,
    )
