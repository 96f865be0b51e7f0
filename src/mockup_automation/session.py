"""Persistent browser profile and login handling."""

import asyncio
import logging
import pathlib
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional
from urllib.parse import urlparse

from playwright.async_api import BrowserContext, BrowserType, Error as PlaywrightError, Page
from playwright.async_api import TimeoutError as PlaywrightTimeoutError

from .config import Settings
from .errors import AuthTimeoutError
from .probes import LOGGED_IN_SELECTOR, LOGIN_BUTTON_SELECTOR
from .utils import file_timestamp


logger = logging.getLogger("MockupAutomation.Session")


BROWSER_ARGS = [
    '--disable-blink-features=AutomationControlled',
    '--no-first-run',
    '--no-default-browser-check',
]

VIEWPORT = {'width': 1280, 'height': 900}

HIDE_WEBDRIVER_SCRIPT = """
    Object.defineProperty(navigator, 'webdriver', {
        get: () => undefined
    });
"""


class SessionState(str, Enum):
    LAUNCHING = "launching"
    NAVIGATING = "navigating"
    AWAITING_LOGIN = "awaiting_login"
    READY = "ready"
    RELEASED = "released"


@dataclass
class SessionHandle:
    """One persistent browser context and the page the run drives."""

    context: BrowserContext
    page: Page
    profile_dir: pathlib.Path
    headless: bool
    closed: bool = False


@dataclass
class SessionManager:
    """
    Launches the browser on a fixed profile directory so that login cookies
    survive between runs, and waits for a human when a login is needed.

    A profile directory must not be shared by two runs at the same time.
    """

    browser_type: BrowserType
    settings: Settings
    state: SessionState = SessionState.LAUNCHING
    history: List[SessionState] = field(default_factory=list)

    def _enter(self, state: SessionState):
        self.state = state
        self.history.append(state)

    async def acquire(
        self,
        profile_dir: Optional[pathlib.Path] = None,
        headless: Optional[bool] = None,
        error_dir: Optional[pathlib.Path] = None,
    ) -> SessionHandle:
        """
        Launch, navigate and wait until the composer is usable.

        On failure an error screenshot is saved to error_dir (default: the
        output folder) and the browser is closed.
        """
        profile_dir = pathlib.Path(profile_dir or self.settings.profile_dir)
        headless = self.settings.headless if headless is None else headless
        profile_dir.mkdir(parents=True, exist_ok=True)

        self._enter(SessionState.LAUNCHING)
        logger.info(f"Launching browser (profile: {profile_dir}, headless: {headless})...")
        context = await self.browser_type.launch_persistent_context(
            str(profile_dir),
            headless=headless,
            viewport=VIEWPORT,
            args=BROWSER_ARGS,
            accept_downloads=True,
            timeout=60000,
        )
        page = None
        try:
            # Remove navigator.webdriver flag
            await context.add_init_script(HIDE_WEBDRIVER_SCRIPT)
            await context.grant_permissions(
                ['clipboard-read', 'clipboard-write'],
                origin=_origin(self.settings.app_url),
            )

            page = context.pages[0] if context.pages else await context.new_page()
            handle = SessionHandle(context=context, page=page, profile_dir=profile_dir, headless=headless)

            self._enter(SessionState.NAVIGATING)
            logger.info(f"Opening {self.settings.app_url}...")
            await page.goto(self.settings.app_url, wait_until='domcontentloaded', timeout=60000)
            await asyncio.sleep(self.settings.page_settle)

            if await self.needs_login(page):
                await self.wait_for_login(page)

            self._enter(SessionState.READY)
            return handle
        except Exception:
            if page is not None:
                await save_error_screenshot(page, error_dir or self.settings.output_dir)
            await context.close()
            raise
        except BaseException:
            await context.close()
            raise

    async def needs_login(self, page: Page) -> bool:
        """True when a visible "Log in" control is on the page."""
        try:
            button = await page.query_selector(LOGIN_BUTTON_SELECTOR)
            return bool(button) and await button.is_visible()
        except PlaywrightError as e:
            # Page may still be redirecting after load
            logger.debug(f"Login probe failed, assuming logged in: {e}")
            return False

    async def wait_for_login(self, page: Page):
        """Block until the user has logged in by hand, or fail after login_timeout."""
        self._enter(SessionState.AWAITING_LOGIN)
        timeout = self.settings.login_timeout
        logger.warning("Please log in to ChatGPT in the browser window.")
        logger.warning(f"The automation continues on its own after login (waiting up to {timeout:.0f}s).")

        try:
            await page.wait_for_selector(LOGGED_IN_SELECTOR, timeout=timeout * 1000)
        except PlaywrightTimeoutError as e:
            raise AuthTimeoutError(f"Login was not completed within {timeout:.0f} seconds") from e

        logger.info("Login detected, continuing")

    async def release(self, handle: SessionHandle):
        """Close the browser context. Safe to call twice."""
        if handle.closed:
            return
        handle.closed = True
        try:
            await handle.context.close()
        finally:
            self._enter(SessionState.RELEASED)
            logger.debug(f"Session released ({handle.profile_dir})")


def _origin(url: str) -> str:
    parts = urlparse(url)
    return f"{parts.scheme}://{parts.netloc}"


async def save_error_screenshot(page: Page, output_dir: pathlib.Path) -> Optional[pathlib.Path]:
    """Best-effort full-page screenshot to <output_dir>/error_<timestamp>.png; never raises."""
    path = pathlib.Path(output_dir) / f"error_{file_timestamp()}.png"
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        await page.screenshot(path=str(path), full_page=True)
    except Exception as e:
        logger.warning(f"Could not save error screenshot: {e}")
        return None
    logger.error(f"Error screenshot saved to: {path}")
    return path
