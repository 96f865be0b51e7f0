"""Locate the generated image in the conversation and save it."""

import base64
import binascii
import io
import logging
from datetime import datetime
from pathlib import Path
from typing import Optional

from PIL import Image, UnidentifiedImageError
from playwright.async_api import Error as PlaywrightError, Page

from .errors import ImageFetchError, NoImageFoundError
from .models import GenerationRequest, GenerationResult
from .probes import ASSISTANT_IMAGE_SELECTOR
from .session import SessionHandle
from .utils import build_output_filename


logger = logging.getLogger("MockupAutomation.Extractor")

# blob: URLs only resolve inside the page that created them
BLOB_TO_BASE64_JS = """
    async (url) => {
        const blob = await (await fetch(url)).blob();
        return await new Promise((resolve, reject) => {
            const reader = new FileReader();
            reader.onload = () => resolve(reader.result.split(',', 2)[1]);
            reader.onerror = () => reject(reader.error);
            reader.readAsDataURL(blob);
        });
    }
"""


class ResultExtractor:
    """Finds the newest assistant image, fetches it and writes it as PNG."""

    selector = ASSISTANT_IMAGE_SELECTOR

    async def count_images(self, page: Page) -> int:
        return len(await page.query_selector_all(self.selector))

    async def extract(
        self,
        handle: SessionHandle,
        request: GenerationRequest,
        now: Optional[datetime] = None,
    ) -> GenerationResult:
        page = handle.page
        images = await page.query_selector_all(self.selector)
        if not images:
            raise NoImageFoundError("The assistant response contains no generated image")

        # Earlier turns may also hold images; the last one in document order is the newest
        index = len(images) - 1
        src = await images[index].get_attribute('src')
        if not src:
            raise ImageFetchError(f"Generated image #{index} has no src attribute")

        logger.info(f"Downloading generated image ({index + 1} of {len(images)} found)...")
        data = await self._fetch_bytes(page, src)
        data = self._as_png(data)

        output_dir = Path(request.output_dir)
        output_dir.mkdir(parents=True, exist_ok=True)
        output_path = output_dir / build_output_filename(request.base_color.value, now)
        part_path = output_path.with_name(output_path.name + '.part')
        part_path.write_bytes(data)
        part_path.replace(output_path)

        logger.info(f"Image saved to {output_path}")
        return GenerationResult(
            output_path=output_path,
            source_locator={'selector': self.selector, 'index': index, 'src': _short(src)},
        )

    async def _fetch_bytes(self, page: Page, src: str) -> bytes:
        if src.startswith('data:'):
            return _decode_data_url(src)

        try:
            if src.startswith('blob:'):
                encoded = await page.evaluate(BLOB_TO_BASE64_JS, src)
                return base64.b64decode(encoded)

            response = await page.request.get(src)
            if not response.ok:
                raise ImageFetchError(f"Image fetch failed: HTTP {response.status} for {_short(src)}")
            return await response.body()
        except PlaywrightError as e:
            raise ImageFetchError(f"Image fetch failed for {_short(src)}: {e}") from e
        except (binascii.Error, TypeError) as e:
            raise ImageFetchError(f"Blob image could not be decoded: {e}") from e

    @staticmethod
    def _as_png(data: bytes) -> bytes:
        """Return PNG bytes, re-encoding other formats."""
        try:
            with Image.open(io.BytesIO(data)) as img:
                if img.format == 'PNG':
                    return data
                if img.mode not in ('RGB', 'RGBA', 'L', 'LA'):
                    img = img.convert('RGBA')
                buffer = io.BytesIO()
                img.save(buffer, format='PNG')
                return buffer.getvalue()
        except (UnidentifiedImageError, OSError) as e:
            raise ImageFetchError("Fetched bytes are not a readable image") from e


def _decode_data_url(src: str) -> bytes:
    header, _, payload = src.partition(',')
    if ';base64' not in header:
        raise ImageFetchError("Only base64 data: URLs are supported")
    try:
        return base64.b64decode(payload)
    except binascii.Error as e:
        raise ImageFetchError(f"Invalid base64 image data: {e}") from e


def _short(src: str, limit: int = 120) -> str:
    return src if len(src) <= limit else src[:limit] + '...'
