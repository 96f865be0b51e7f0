"""
Fake Playwright and HTTP surfaces for the automation tests.

FakePage answers selectors from a dict the test fills in and records every
browser operation in `calls`, so tests can assert on what was (or was not)
done without a real browser.
"""

import io
import json as jsonlib
import threading
from pathlib import Path
from typing import Callable, Dict, List, Optional

from PIL import Image
from playwright.async_api import TimeoutError as PlaywrightTimeoutError

from mockup_automation.probes import ASSISTANT_IMAGE_SELECTOR


def make_png(path: Optional[Path] = None, color: str = "red", fmt: str = "PNG") -> bytes:
    """Small real image; written to path when one is given."""
    buffer = io.BytesIO()
    Image.new("RGB", (4, 4), color).save(buffer, format=fmt)
    data = buffer.getvalue()
    if path is not None:
        Path(path).parent.mkdir(parents=True, exist_ok=True)
        Path(path).write_bytes(data)
    return data


class FakeElement:
    def __init__(self, page: "FakePage", selector: str, attrs: Optional[Dict[str, str]] = None,
                 visible: bool = True, submits: bool = False):
        self.page = page
        self.selector = selector
        self.attrs = attrs or {}
        self.visible = visible
        self.submits = submits

    async def click(self):
        self.page.calls.append(("click", self.selector))
        if self.submits:
            self.page.fire_submit()

    async def set_input_files(self, files):
        self.page.calls.append(("set_input_files", list(files)))

    async def get_attribute(self, name):
        return self.attrs.get(name)

    async def is_visible(self):
        return self.visible

    async def fill(self, text):
        self.page.calls.append(("fill", text))

    async def type(self, text):
        self.page.calls.append(("type", text))


class FakeKeyboard:
    def __init__(self, page: "FakePage"):
        self.page = page

    async def press(self, key):
        self.page.calls.append(("press", key))
        if key == "Enter":
            self.page.fire_submit()


class FakeAPIResponse:
    def __init__(self, body: bytes = b"", status: int = 200):
        self._body = body
        self.status = status

    @property
    def ok(self):
        return 200 <= self.status < 300

    async def body(self):
        return self._body


class FakeRequest:
    def __init__(self):
        self.responses: Dict[str, FakeAPIResponse] = {}
        self.fetched: List[str] = []

    async def get(self, url):
        self.fetched.append(url)
        return self.responses.get(url, FakeAPIResponse(status=404))


class FakePage:
    def __init__(self, url: str = "https://chatgpt.com/"):
        self.url = url
        self.elements: Dict[str, List[FakeElement]] = {}
        self.calls: List[tuple] = []
        self.keyboard = FakeKeyboard(self)
        self.request = FakeRequest()
        self.clipboard: Optional[str] = None
        self.on_submit: List[Callable[["FakePage"], None]] = []
        self.screenshot_error: Optional[Exception] = None

    # test setup helpers

    def add(self, selector: str, **kwargs) -> FakeElement:
        element = FakeElement(self, selector, **kwargs)
        self.elements.setdefault(selector, []).append(element)
        return element

    def add_assistant_image(self, src: str, body: Optional[bytes] = None) -> FakeElement:
        element = self.add(ASSISTANT_IMAGE_SELECTOR, attrs={"src": src})
        if body is not None:
            self.request.responses[src] = FakeAPIResponse(body)
        return element

    def fire_submit(self):
        for callback in self.on_submit:
            callback(self)

    def called(self, name: str) -> List[tuple]:
        return [call for call in self.calls if call[0] == name]

    # Playwright Page surface

    async def goto(self, url, **kwargs):
        self.calls.append(("goto", url))
        self.url = url

    async def wait_for_selector(self, selector, state=None, timeout=None):
        self.calls.append(("wait_for_selector", selector, timeout))
        found = self.elements.get(selector)
        if found:
            return found[0]
        raise PlaywrightTimeoutError(f"Timeout {timeout}ms exceeded waiting for {selector}")

    async def query_selector(self, selector):
        self.calls.append(("query_selector", selector))
        found = self.elements.get(selector)
        return found[0] if found else None

    async def query_selector_all(self, selector):
        return list(self.elements.get(selector, []))

    async def evaluate(self, script, arg=None):
        self.calls.append(("evaluate", script, arg))
        if "clipboard" in script:
            self.clipboard = arg
        return None

    async def screenshot(self, path=None, full_page=False):
        self.calls.append(("screenshot", path, full_page))
        if self.screenshot_error:
            raise self.screenshot_error
        Path(path).write_bytes(b"screenshot")


class FakeContext:
    def __init__(self, page: FakePage):
        self.pages = [page]
        self.closed = False
        self.init_scripts: List[str] = []
        self.permissions: List[tuple] = []

    async def add_init_script(self, script):
        self.init_scripts.append(script)

    async def grant_permissions(self, permissions, origin=None):
        self.permissions.append((tuple(permissions), origin))

    async def new_page(self):
        page = FakePage()
        self.pages.append(page)
        return page

    async def close(self):
        self.closed = True


class FakeBrowserType:
    def __init__(self, page: FakePage):
        self.context = FakeContext(page)
        self.launches: List[tuple] = []

    async def launch_persistent_context(self, user_data_dir, **kwargs):
        self.launches.append((user_data_dir, kwargs))
        return self.context


class FakeHTTPResponse:
    """Minimal requests.Response stand-in."""

    def __init__(self, status_code: int = 200, body: bytes = b"", headers: Optional[Dict[str, str]] = None,
                 json_data=None, reason: str = "OK"):
        self.status_code = status_code
        self.headers = headers or {}
        self.reason = reason
        self._body = body
        self._json = json_data
        self.closed = False

    def iter_content(self, chunk_size=8192):
        for start in range(0, len(self._body), chunk_size):
            yield self._body[start:start + chunk_size]

    def json(self):
        if self._json is None:
            return jsonlib.loads(self._body.decode("utf-8"))
        return self._json

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        self.closed = True
        return False


class FakeProcess:
    """Popen stand-in whose stdout can be held open until released."""

    _next_pid = 40000

    def __init__(self, lines, returncode=0, block=False):
        self.lines = lines
        self.returncode = returncode
        self.release = threading.Event()
        if not block:
            self.release.set()
        FakeProcess._next_pid += 1
        self.pid = FakeProcess._next_pid
        self.stdout = self._stream()

    def _stream(self):
        for line in self.lines:
            yield line
        self.release.wait(5)

    def wait(self, timeout=None):
        self.release.wait(timeout)
        return self.returncode


class FakePopen:
    def __init__(self, *processes):
        self.processes = list(processes)
        self.calls = []

    def __call__(self, command, **kwargs):
        self.calls.append((command, kwargs))
        return self.processes.pop(0)
