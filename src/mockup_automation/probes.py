"""
Selector tables for the chat UI.

The chat UI changes often, so each control is described as an ordered list
of named probes. The first probe that resolves wins. UI drift is fixed by
editing these tables.
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Optional, Sequence, Tuple

from playwright.async_api import Page, ElementHandle, TimeoutError as PlaywrightTimeoutError


logger = logging.getLogger("MockupAutomation.Probes")


@dataclass(frozen=True)
class Probe:
    name: str
    selector: str


COMPOSER_PROBES: Tuple[Probe, ...] = (
    Probe("prompt-textarea", '#prompt-textarea'),
    Probe("root-textarea", 'textarea[data-id="root"]'),
    Probe("contenteditable", 'div[contenteditable="true"]'),
    Probe("any-textarea", 'textarea'),
)

ATTACHMENT_PROBES: Tuple[Probe, ...] = (
    Probe("file-input", 'input[type="file"]'),
)

SEND_PROBES: Tuple[Probe, ...] = (
    Probe("send-button-testid", 'button[data-testid="send-button"]'),
    Probe("send-button-text", 'button:has-text("Send")'),
    Probe("send-button-aria", 'button[aria-label*="Send"]'),
)

LOGIN_BUTTON_SELECTOR = 'button:has-text("Log in")'

# Any of these means the user is past the login wall
LOGGED_IN_SELECTOR = '[data-testid="send-button"], button[data-testid="send-button"], form textarea, #prompt-textarea'

ASSISTANT_IMAGE_SELECTOR = 'div[data-message-author-role="assistant"] img'


async def probe_first(
    page: Page,
    probes: Sequence[Probe],
    probe_timeout: float = 1.5,
) -> Optional[Tuple[Probe, ElementHandle]]:
    """
    Try each probe once, in order, with a short wait.

    Returns:
        (probe, element) for the first probe that resolves, else None
    """
    for probe in probes:
        try:
            element = await page.wait_for_selector(
                probe.selector, state="attached", timeout=probe_timeout * 1000
            )
        except PlaywrightTimeoutError:
            continue
        if element:
            logger.debug(f"Probe '{probe.name}' matched ({probe.selector})")
            return probe, element
    return None


async def probe_until(
    page: Page,
    probes: Sequence[Probe],
    timeout: float,
    probe_timeout: float = 1.5,
    poll_interval: float = 1.0,
) -> Optional[Tuple[Probe, ElementHandle]]:
    """Repeat probe rounds until one probe resolves or timeout expires."""
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while True:
        found = await probe_first(page, probes, probe_timeout)
        if found:
            return found
        if loop.time() >= deadline:
            return None
        await asyncio.sleep(poll_interval)


async def query_first(page: Page, probes: Sequence[Probe]) -> Optional[Tuple[Probe, ElementHandle]]:
    """Like probe_first, but without waiting: the control is there now or not at all."""
    for probe in probes:
        element = await page.query_selector(probe.selector)
        if element:
            logger.debug(f"Probe '{probe.name}' matched ({probe.selector})")
            return probe, element
    return None
