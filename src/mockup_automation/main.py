"""Command-line entry point: python -m mockup_automation."""

import argparse
import asyncio
import logging
import os
import sys
from pathlib import Path
from typing import List, Optional

from colorama import Fore, Style, init
from playwright.async_api import Error as PlaywrightError

from .config import Settings
from .errors import MockupAutomationError
from .models import ColorKey
from .pipeline import RunOptions, run_pipeline
from .utils import RESULT_PREFIX, setup_logging

# Fix Windows console encoding
if sys.platform == 'win32':
    os.environ['PYTHONIOENCODING'] = 'utf-8'
    os.environ['PYTHONUTF8'] = '1'

# Initialize colorama
init(autoreset=True)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="mockup_automation",
        description="Generate an embossed notebook mockup through ChatGPT",
    )
    parser.add_argument("--color", default="blue", choices=[c.value for c in ColorKey],
                        help="Notebook color (default: blue)")
    parser.add_argument("--design", default="",
                        help="Description of the design (Image B)")
    parser.add_argument("--design-image", help="Path to a local design image")
    parser.add_argument("--design-url", help="URL of a design image to download")
    parser.add_argument("--inspiration-id",
                        help="Inspiration library id (fetches image and description)")
    parser.add_argument("--output", type=Path, help="Output folder for downloaded images")
    parser.add_argument("--profile-dir", type=Path, help="Persistent browser profile directory")
    parser.add_argument("--templates-dir", type=Path, help="Folder with <color>.png and bluedog.png")
    parser.add_argument("--headless", action=argparse.BooleanOptionalAction, default=None,
                        help="Run without a visible browser (log in once headful first)")
    parser.add_argument("--close", action="store_true",
                        help="Close the browser when done instead of keeping it open for review")
    parser.add_argument("--env-file", help="Path to a .env file")
    return parser


def print_banner(options: RunOptions):
    print(f"\n{Fore.YELLOW}{Style.BRIGHT}{'='*60}{Style.RESET_ALL}")
    print(f"{Fore.YELLOW}{Style.BRIGHT}Step 1: Design to Product Mockup Automation{Style.RESET_ALL}")
    print(f"{Fore.YELLOW}{Style.BRIGHT}{'='*60}{Style.RESET_ALL}\n")
    print(f"{Fore.CYAN}Mode:{Style.RESET_ALL} {'Headless' if options.headless else 'Headful (visible browser)'}\n")


def announce_result(result):
    print(f"\n{Fore.GREEN}{Style.BRIGHT}Success! Image saved to:{Style.RESET_ALL}")
    print(f"   {result.output_path}\n")
    print(f"{RESULT_PREFIX} {result.output_path}", flush=True)


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)

    settings = Settings.from_env(args.env_file).with_overrides(
        templates_dir=args.templates_dir,
        output_dir=args.output,
        profile_dir=args.profile_dir,
        headless=args.headless,
    )
    setup_logging(settings.log_file, settings.log_level)
    logger = logging.getLogger("MockupAutomation")

    options = RunOptions(
        color=args.color,
        design=args.design,
        design_image=args.design_image,
        design_url=args.design_url,
        inspiration_id=args.inspiration_id,
        output_dir=settings.output_dir,
        profile_dir=settings.profile_dir,
        headless=settings.headless,
        keep_open=False if args.close else None,
    )
    print_banner(options)

    try:
        asyncio.run(run_pipeline(options, settings, on_result=announce_result))
    except (MockupAutomationError, PlaywrightError) as e:
        logger.debug("Run failed", exc_info=True)
        print(f"\n{Fore.RED}[ERROR] {type(e).__name__}: {e}{Style.RESET_ALL}", file=sys.stderr)
        return 1
    except KeyboardInterrupt:
        print(f"\n{Fore.YELLOW}Interrupted by user.{Style.RESET_ALL}")
        return 130
    return 0
