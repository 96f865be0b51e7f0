import asyncio
import base64
from datetime import datetime, timezone

import pytest
from PIL import Image

from mockup_automation.errors import ImageFetchError, NoImageFoundError
from mockup_automation.extractor import ResultExtractor
from mockup_automation.models import ColorKey, GenerationRequest
from mockup_automation.session import SessionHandle

from fakes import FakeContext, FakePage, make_png


MOMENT = datetime(2026, 10, 19, 8, 27, 1, tzinfo=timezone.utc)


@pytest.fixture
def request_(output_dir):
    return GenerationRequest(ColorKey.PURPLE, "cute cat", None, output_dir)


def extract(page, request, tmp_path):
    handle = SessionHandle(context=FakeContext(page), page=page, profile_dir=tmp_path, headless=True)
    return asyncio.run(ResultExtractor().extract(handle, request, now=MOMENT))


class TestResultExtractor:

    def test_picks_last_image(self, request_, tmp_path):
        page = FakePage()
        page.add_assistant_image("https://files.test/first.png", make_png(color="red"))
        page.add_assistant_image("https://files.test/second.png", make_png(color="blue"))

        result = extract(page, request_, tmp_path)

        assert page.request.fetched == ["https://files.test/second.png"]
        assert result.source_locator["index"] == 1
        assert result.output_path.name == "mockup_purple_2026-10-19T08-27-01.png"
        with Image.open(result.output_path) as img:
            assert img.getpixel((0, 0)) == (0, 0, 255)

    def test_no_images(self, request_, tmp_path):
        with pytest.raises(NoImageFoundError):
            extract(FakePage(), request_, tmp_path)

    def test_fetch_failure_leaves_no_file(self, request_, tmp_path, output_dir):
        page = FakePage()
        page.add_assistant_image("https://files.test/gone.png")

        with pytest.raises(ImageFetchError, match="HTTP 404"):
            extract(page, request_, tmp_path)

        assert list(output_dir.iterdir()) == []

    def test_data_url(self, request_, tmp_path):
        page = FakePage()
        encoded = base64.b64encode(make_png()).decode("ascii")
        page.add_assistant_image(f"data:image/png;base64,{encoded}")

        result = extract(page, request_, tmp_path)

        assert result.output_path.read_bytes() == make_png()
        assert page.request.fetched == []

    def test_jpeg_is_reencoded_as_png(self, request_, tmp_path):
        page = FakePage()
        page.add_assistant_image("https://files.test/result.jpg", make_png(fmt="JPEG"))

        result = extract(page, request_, tmp_path)

        with Image.open(result.output_path) as img:
            assert img.format == "PNG"

    def test_unreadable_bytes(self, request_, tmp_path, output_dir):
        page = FakePage()
        page.add_assistant_image("https://files.test/broken.png", b"<html>expired</html>")

        with pytest.raises(ImageFetchError, match="not a readable image"):
            extract(page, request_, tmp_path)

        assert list(output_dir.iterdir()) == []
