"""Resolve design references (local file, URL, lookup id) into local inputs."""

import logging
import threading
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional
from urllib.parse import urljoin

import requests
from PIL import Image, UnidentifiedImageError

from .config import Settings
from .errors import ResolutionError
from .models import ColorKey, GenerationRequest, UploadSet
from .utils import guess_extension


REDIRECT_STATUSES = (301, 302, 303, 307, 308)
REFERENCE_TEMPLATE = "bluedog.png"
DEFAULT_IMAGE_DESCRIPTION = "the artwork shown in the attached design image"

logger = logging.getLogger("MockupAutomation.Resolver")


@dataclass(frozen=True)
class DesignRef:
    """A design reference and how to interpret it."""

    kind: str  # "path", "url" or "lookup"
    value: str

    @classmethod
    def path(cls, value) -> "DesignRef":
        return cls("path", str(value))

    @classmethod
    def url(cls, value: str) -> "DesignRef":
        return cls("url", value)

    @classmethod
    def lookup(cls, value: str) -> "DesignRef":
        return cls("lookup", value)


@dataclass(frozen=True)
class ResolvedDesign:
    description: str
    image_path: Optional[Path]
    source: str


class LookupClient:
    """Read-only client for the inspiration lookup service (PostgREST style)."""

    def __init__(self, base_url: str, api_key: str, collection: str = "inspirations", timeout: float = 30):
        self.base_url = base_url.rstrip("/")
        self.api_key = api_key
        self.collection = collection
        self.timeout = timeout

    @classmethod
    def from_settings(cls, settings: Settings) -> "LookupClient":
        return cls(
            base_url=settings.lookup_base_url,
            api_key=settings.lookup_api_key,
            collection=settings.lookup_collection,
            timeout=settings.request_timeout,
        )

    def fetch(self, identifier: str) -> Dict[str, Any]:
        """
        Fetch one record by id.

        Returns:
            The record dict, guaranteed to hold 'description' and 'file_url'
        """
        if not self.base_url:
            raise ResolutionError("Lookup service is not configured (set SUPABASE_URL)")

        url = f"{self.base_url}/{self.collection}"
        headers = {
            "apikey": self.api_key,
            "Authorization": f"Bearer {self.api_key}",
        }
        params = {"id": f"eq.{identifier}", "select": "*"}

        logger.debug(f"Looking up {self.collection} id={identifier}")
        try:
            response = requests.get(url, headers=headers, params=params, timeout=self.timeout)
        except requests.RequestException as e:
            raise ResolutionError(f"Lookup request failed for '{identifier}': {e}") from e

        if response.status_code >= 400:
            raise ResolutionError(
                f"Lookup failed for '{identifier}': HTTP {response.status_code} {response.reason}"
            )

        try:
            rows = response.json()
        except ValueError as e:
            raise ResolutionError(f"Lookup returned invalid JSON for '{identifier}'") from e

        if not isinstance(rows, list) or not rows:
            raise ResolutionError(f"Inspiration not found: {identifier}")

        record = rows[0]
        missing = [key for key in ("description", "file_url") if not record.get(key)]
        if missing:
            raise ResolutionError(f"Inspiration {identifier} is missing field(s): {', '.join(missing)}")
        return record


def download_image(
    url: str,
    output_path: Path,
    timeout: float = 30,
    max_redirects: int = 5,
    max_bytes: int = 20 * 1024 * 1024,
) -> Path:
    """
    Download an image, following at most max_redirects redirects.

    The body is streamed into a .part file that is renamed only once the
    download is complete and decodes as an image.

    Args:
        url: http(s) URL of the image
        output_path: Target file path
        timeout: Per-request timeout in seconds
        max_redirects: Maximum number of redirect hops
        max_bytes: Maximum accepted body size

    Returns:
        output_path
    """
    current = url
    for _ in range(max_redirects + 1):
        try:
            response = requests.get(current, stream=True, timeout=timeout, allow_redirects=False)
        except requests.Timeout as e:
            raise ResolutionError(f"Timed out downloading {current}") from e
        except requests.RequestException as e:
            raise ResolutionError(f"Failed to download {current}: {e}") from e

        with response:
            if response.status_code in REDIRECT_STATUSES:
                location = response.headers.get("Location")
                if not location:
                    raise ResolutionError(f"Redirect from {current} has no Location header")
                current = urljoin(current, location)
                logger.debug(f"Following redirect to {current}")
                continue

            if not 200 <= response.status_code < 300:
                raise ResolutionError(f"Download failed: HTTP {response.status_code} for {current}")

            content_type = response.headers.get("Content-Type", "")
            if content_type and not content_type.lower().startswith("image/"):
                raise ResolutionError(f"Expected an image from {current}, got '{content_type}'")

            _stream_to_file(response, output_path, max_bytes)

        _verify_image(output_path)
        return output_path

    raise ResolutionError(f"Too many redirects (more than {max_redirects}) while downloading {url}")


def _stream_to_file(response, output_path: Path, max_bytes: int):
    output_path.parent.mkdir(parents=True, exist_ok=True)
    part_path = output_path.with_name(output_path.name + ".part")
    written = 0
    try:
        with open(part_path, "wb") as f:
            for chunk in response.iter_content(chunk_size=8192):
                if not chunk:
                    continue
                written += len(chunk)
                if written > max_bytes:
                    raise ResolutionError(f"Image exceeds the {max_bytes} byte limit")
                f.write(chunk)
    except requests.RequestException as e:
        part_path.unlink(missing_ok=True)
        raise ResolutionError(f"Download interrupted: {e}") from e
    except ResolutionError:
        part_path.unlink(missing_ok=True)
        raise
    part_path.replace(output_path)


def _verify_image(path: Path):
    try:
        with Image.open(path) as img:
            img.verify()
    except (UnidentifiedImageError, OSError, SyntaxError) as e:
        path.unlink(missing_ok=True)
        raise ResolutionError(f"Downloaded file is not a valid image: {path.name}") from e


class ImageResolver:
    """Turns design references into local image files."""

    _stamp_lock = threading.Lock()
    _last_stamp = 0

    def __init__(self, settings: Settings, output_dir: Path, lookup_client: Optional[LookupClient] = None):
        self.settings = settings
        self.output_dir = Path(output_dir)
        self.temp_dir = self.output_dir / ".temp"
        self.lookup_client = lookup_client or LookupClient.from_settings(settings)

    def lookup(self, identifier: str) -> Dict[str, Any]:
        logger.info(f"Fetching inspiration: {identifier}")
        record = self.lookup_client.fetch(identifier)
        logger.info(f"Found: \"{record['description']}\"")
        return record

    def resolve(self, ref: Optional[DesignRef]) -> Optional[Path]:
        """Return a local path for the reference, or None when there is none."""
        if ref is None or not ref.value:
            return None

        if ref.kind == "path":
            path = Path(ref.value).expanduser()
            if not path.is_file():
                raise ResolutionError(f"Design image not found: {path}")
            return path

        if ref.kind == "url":
            return self._download(ref.value)

        if ref.kind == "lookup":
            record = self.lookup(ref.value)
            return self._download(record["file_url"])

        raise ValueError(f"Unknown design reference kind: {ref.kind}")

    def resolve_inputs(
        self,
        description: Optional[str] = None,
        design_image: Optional[str] = None,
        design_url: Optional[str] = None,
        lookup_id: Optional[str] = None,
    ) -> ResolvedDesign:
        """
        Apply the input priority rules: lookup id, then image reference,
        then text description.
        """
        description = (description or "").strip()

        if lookup_id:
            record = self.lookup(lookup_id)
            image_path = self._download(record["file_url"])
            return ResolvedDesign(record["description"], image_path, source="lookup")

        if design_image or design_url:
            ref = DesignRef.path(design_image) if design_image else DesignRef.url(design_url)
            image_path = self.resolve(ref)
            return ResolvedDesign(description or DEFAULT_IMAGE_DESCRIPTION, image_path, source=ref.kind)

        if description:
            return ResolvedDesign(description, None, source="description")

        raise ResolutionError("A design description, design image or inspiration id is required")

    def _download(self, url: str) -> Path:
        logger.info("Downloading design image...")
        # Name is provisional until the Content-Type is known, then fixed below
        stamp = self._next_stamp()
        target = self.temp_dir / f"design_{stamp}.png"
        download_image(
            url,
            target,
            timeout=self.settings.request_timeout,
            max_redirects=self.settings.max_redirects,
            max_bytes=self.settings.max_download_bytes,
        )
        final = self._rename_for_format(target)
        logger.info(f"Downloaded to temp file {final}")
        return final

    @staticmethod
    def _rename_for_format(path: Path) -> Path:
        with Image.open(path) as img:
            fmt = (img.format or "PNG").upper()
        ext = guess_extension(Image.MIME.get(fmt), default=path.suffix)
        if ext == path.suffix:
            return path
        renamed = path.with_suffix(ext)
        path.replace(renamed)
        return renamed

    @classmethod
    def _next_stamp(cls) -> int:
        with cls._stamp_lock:
            stamp = max(int(time.time() * 1000), cls._last_stamp + 1)
            cls._last_stamp = stamp
            return stamp


def build_request(color: str, resolved: ResolvedDesign, output_dir: Path) -> GenerationRequest:
    return GenerationRequest(
        base_color=ColorKey.parse(color) if isinstance(color, str) else ColorKey(color),
        design_description=resolved.description,
        design_image=resolved.image_path,
        output_dir=Path(output_dir),
    )


def build_upload_set(request: GenerationRequest, templates_dir: Path) -> UploadSet:
    """Locate the template images and order the attachments for a request."""
    templates_dir = Path(templates_dir)
    base = templates_dir / f"{request.base_color.value}.png"
    reference = templates_dir / REFERENCE_TEMPLATE

    if not base.is_file():
        choices = ", ".join(c.value for c in ColorKey)
        raise ResolutionError(f"Base notebook image not found: {base} (available colors: {choices})")
    if not reference.is_file():
        raise ResolutionError(f"Emboss reference image not found: {reference}")

    return UploadSet(base=base, design=request.design_image, reference=reference)
