"""Wire the resolver, session, interaction and extractor into one run."""

import asyncio
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Optional, Tuple

from playwright.async_api import BrowserType, async_playwright

from .config import Settings
from .interaction import MockupInteraction
from .models import GenerationRequest, GenerationResult, UploadSet
from .prompts import render_prompt
from .resolver import ImageResolver, build_request, build_upload_set
from .session import SessionManager


logger = logging.getLogger("MockupAutomation.Pipeline")


@dataclass
class RunOptions:
    """Inputs of one run, as given on the command line."""

    color: str = "blue"
    design: str = ""
    design_image: Optional[str] = None
    design_url: Optional[str] = None
    inspiration_id: Optional[str] = None
    output_dir: Optional[Path] = None
    profile_dir: Optional[Path] = None
    headless: Optional[bool] = None
    keep_open: Optional[bool] = None


def prepare(
    options: RunOptions,
    settings: Settings,
    resolver: Optional[ImageResolver] = None,
) -> Tuple[GenerationRequest, UploadSet, str]:
    """Resolve inputs and build everything the browser stage needs."""
    output_dir = Path(options.output_dir or settings.output_dir)
    output_dir.mkdir(parents=True, exist_ok=True)

    resolver = resolver or ImageResolver(settings, output_dir)
    resolved = resolver.resolve_inputs(
        description=options.design,
        design_image=options.design_image,
        design_url=options.design_url,
        lookup_id=options.inspiration_id,
    )
    request = build_request(options.color, resolved, output_dir)
    upload_set = build_upload_set(request, settings.templates_dir)
    prompt = render_prompt(request.base_color, request.design_description)

    logger.info(f"Notebook Color: {request.base_color.value}")
    logger.info(f"Design: {request.design_description}")
    if request.design_image:
        logger.info(f"Design Image: {request.design_image}")
    logger.info(f"Output: {request.output_dir}")
    return request, upload_set, prompt


async def run_pipeline(
    options: RunOptions,
    settings: Settings,
    browser_type: Optional[BrowserType] = None,
    resolver: Optional[ImageResolver] = None,
    on_result: Optional[Callable[[GenerationResult], None]] = None,
) -> GenerationResult:
    """
    Run one automation attempt.

    Args:
        options: Run inputs
        settings: Runtime configuration
        browser_type: Playwright browser type; launched from a fresh
            Playwright instance when omitted
        resolver: Image resolver override
        on_result: Called with the result before the browser is held open

    Returns:
        GenerationResult of the saved mockup
    """
    request, upload_set, prompt = prepare(options, settings, resolver)

    if browser_type is not None:
        return await _drive(browser_type, options, settings, request, upload_set, prompt, on_result)

    async with async_playwright() as p:
        return await _drive(p.chromium, options, settings, request, upload_set, prompt, on_result)


async def _drive(browser_type, options, settings, request, upload_set, prompt, on_result):
    headless = settings.headless if options.headless is None else options.headless
    keep_open = (not headless) if options.keep_open is None else options.keep_open

    manager = SessionManager(browser_type, settings)
    handle = await manager.acquire(
        options.profile_dir or settings.profile_dir, headless, error_dir=request.output_dir
    )
    try:
        result = await MockupInteraction(handle, settings).run(request, upload_set, prompt)
    except BaseException:
        await manager.release(handle)
        raise

    if on_result:
        on_result(result)

    if keep_open:
        logger.info("Browser will stay open for review. Press Ctrl+C to close.")
        # Intentionally idle until the process is interrupted or terminated
        await asyncio.Event().wait()

    await manager.release(handle)
    return result
