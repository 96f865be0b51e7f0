"""
The chat interaction state machine.

One run walks IDLE -> COMPOSER_READY -> [IMAGES_ATTACHED] -> PROMPT_ENTERED
-> SUBMITTED -> GENERATION_PENDING -> RESULT_FOUND -> DONE. Any failure
moves to ERROR_CAPTURED, which saves a screenshot and re-raises. Nothing is
retried inside a run.
"""

import asyncio
import logging
from enum import Enum
from pathlib import Path
from typing import List, Optional

from playwright.async_api import ElementHandle, Error as PlaywrightError

from .config import Settings
from .errors import ComposerNotFoundError, GenerationTimeoutError, PromptEntryError
from .extractor import ResultExtractor
from .models import GenerationRequest, GenerationResult, UploadSet
from .probes import ATTACHMENT_PROBES, COMPOSER_PROBES, SEND_PROBES, probe_until, query_first
from .session import SessionHandle, save_error_screenshot


logger = logging.getLogger("MockupAutomation.Interaction")

PASTE_SHORTCUT = 'ControlOrMeta+KeyV'
CLIPBOARD_WRITE_JS = "(text) => navigator.clipboard.writeText(text)"
ENTER_SUBMIT = 'enter-key'

UPLOAD_ROLES = {
    2: ('Image A (Base)', 'Image C (Reference)'),
    3: ('Image A (Base)', 'Image B (Design)', 'Image C (Reference)'),
}


class InteractionState(str, Enum):
    IDLE = "idle"
    COMPOSER_READY = "composer_ready"
    IMAGES_ATTACHED = "images_attached"
    PROMPT_ENTERED = "prompt_entered"
    SUBMITTED = "submitted"
    GENERATION_PENDING = "generation_pending"
    RESULT_FOUND = "result_found"
    DONE = "done"
    ERROR_CAPTURED = "error_captured"


class MockupInteraction:
    """Drives one page through upload, prompt, submit and generation wait."""

    def __init__(self, handle: SessionHandle, settings: Settings, extractor: Optional[ResultExtractor] = None):
        self.handle = handle
        self.page = handle.page
        self.settings = settings
        self.extractor = extractor or ResultExtractor()

        self.state = InteractionState.IDLE
        self.history: List[InteractionState] = [InteractionState.IDLE]
        self.attached: List[str] = []
        self.submit_method: Optional[str] = None
        self.snapshot_path: Optional[Path] = None

    def _enter(self, state: InteractionState):
        logger.debug(f"{self.state.value} -> {state.value}")
        self.state = state
        self.history.append(state)

    async def run(self, request: GenerationRequest, upload_set: Optional[UploadSet], prompt: str) -> GenerationResult:
        """Single attempt from an idle page to a saved mockup."""
        try:
            composer = await self.find_composer()
            await self.attach_images(upload_set)
            await self.enter_prompt(composer, prompt)
            baseline = await self.extractor.count_images(self.page)
            await self.submit(composer)
            await self.wait_for_generation(baseline)

            result = await self.extractor.extract(self.handle, request)
            self._enter(InteractionState.DONE)
            return result
        except Exception:
            await self.capture_error(request.output_dir)
            raise

    async def find_composer(self) -> ElementHandle:
        logger.info("Waiting for chat interface...")
        found = await probe_until(
            self.page,
            COMPOSER_PROBES,
            timeout=self.settings.composer_timeout,
            probe_timeout=self.settings.probe_timeout,
            poll_interval=self.settings.poll_interval,
        )
        if not found:
            raise ComposerNotFoundError(
                f"Could not find the message input within {self.settings.composer_timeout:.0f}s "
                f"(URL: {self.page.url})"
            )
        probe, composer = found
        logger.info(f"Found input field: {probe.name}")
        self._enter(InteractionState.COMPOSER_READY)
        return composer

    async def attach_images(self, upload_set: Optional[UploadSet]) -> bool:
        """
        Attach every image in one operation.

        Returns False (and leaves the state unchanged) when there is nothing
        to attach or no attachment control; the run continues text-only.
        """
        if not upload_set:
            logger.info("No images to attach, proceeding with text only")
            return False

        found = await query_first(self.page, ATTACHMENT_PROBES)
        if not found:
            logger.warning("Could not find file upload input, proceeding with text only")
            return False

        _, file_input = found
        roles = UPLOAD_ROLES[len(upload_set)]
        logger.info("Uploading images...")
        for role, path in zip(roles, upload_set):
            logger.info(f"  {role}: {path.name}")
        if not upload_set.has_design:
            logger.info("  Image B (Design): [No image - using description only]")

        await file_input.set_input_files(upload_set.as_strings())
        await asyncio.sleep(self.settings.upload_settle)

        self.attached = upload_set.as_strings()
        self._enter(InteractionState.IMAGES_ATTACHED)
        logger.info("Images uploaded")
        return True

    async def enter_prompt(self, composer: ElementHandle, prompt: str):
        """Paste the prompt through the clipboard. Typing is never used."""
        logger.info(f"Entering prompt ({len(prompt)} chars)...")
        try:
            await composer.click()
            await asyncio.sleep(self.settings.paste_settle / 2)
            await self.page.evaluate(CLIPBOARD_WRITE_JS, prompt)
            await self.page.keyboard.press(PASTE_SHORTCUT)
        except PlaywrightError as e:
            raise PromptEntryError(f"Could not paste the prompt: {e}") from e
        await asyncio.sleep(self.settings.paste_settle)
        self._enter(InteractionState.PROMPT_ENTERED)

    async def submit(self, composer: ElementHandle) -> str:
        """Click the send control, or press Enter when there is none."""
        logger.info("Sending message...")
        found = await query_first(self.page, SEND_PROBES)
        if found:
            probe, button = found
            await button.click()
            self.submit_method = probe.name
        else:
            logger.warning("No send button found, pressing Enter instead")
            await self.page.keyboard.press('Enter')
            self.submit_method = ENTER_SUBMIT
        self._enter(InteractionState.SUBMITTED)
        return self.submit_method

    async def wait_for_generation(self, baseline: int):
        """Poll until an assistant image beyond the pre-submit count appears."""
        self._enter(InteractionState.GENERATION_PENDING)
        timeout = self.settings.generation_timeout
        logger.info(f"Waiting for ChatGPT to generate image (up to {timeout:.0f}s)...")

        loop = asyncio.get_running_loop()
        deadline = loop.time() + timeout
        waited = 0
        while True:
            count = await self.extractor.count_images(self.page)
            if count > baseline:
                break
            if loop.time() >= deadline:
                raise GenerationTimeoutError(f"No generated image appeared within {timeout:.0f} seconds")
            await asyncio.sleep(self.settings.poll_interval)
            waited += 1
            if waited % 15 == 0:
                logger.info(f"Still waiting... ({waited} polls)")

        logger.info("Image generated!")
        # Let the image finish loading before it is fetched
        await asyncio.sleep(self.settings.result_settle)
        self._enter(InteractionState.RESULT_FOUND)

    async def capture_error(self, output_dir: Path):
        """Best-effort full-page screenshot; never raises."""
        self._enter(InteractionState.ERROR_CAPTURED)
        self.snapshot_path = await save_error_screenshot(self.page, output_dir)
