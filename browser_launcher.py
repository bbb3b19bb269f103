"""
Browser Launcher
Launches Chromium with stealth flags and resolves desktop device profiles
"""

import random
from typing import Any, Dict, Optional, Tuple

from loguru import logger
from playwright.async_api import Browser, Playwright

from config import AppConfig
from fingerprint import DESKTOP_DEVICES
from models import FingerprintConfig
from stealth import IGNORE_DEFAULT_ARGS, LAUNCH_ARGS


def get_launch_options(config: AppConfig, headless: bool, timeout: Optional[int] = None) -> Dict[str, Any]:
    """
    Build Chromium launch options

    Args:
        config: Application configuration (custom executable path)
        headless: Launch without a visible window
        timeout: Launch timeout in milliseconds

    Returns:
        Keyword arguments for BrowserType.launch
    """
    options = {
        "headless": headless,
        "args": list(LAUNCH_ARGS),
        "ignore_default_args": list(IGNORE_DEFAULT_ARGS),
    }
    if timeout is not None:
        options["timeout"] = timeout
    if config.chromium_executable_path:
        options["executable_path"] = config.chromium_executable_path
    return options


async def launch_browser(
    playwright: Playwright,
    config: AppConfig,
    headless: bool = True,
    timeout: Optional[int] = None
) -> Browser:
    """Launch a Chromium browser with anti-detection flags"""
    mode = "headless" if headless else "visible"
    logger.info(f"🚀 Launching browser in {mode} mode...")

    browser = await playwright.chromium.launch(**get_launch_options(config, headless, timeout))

    logger.info("✅ Browser launched successfully")
    return browser


def get_device_descriptor(playwright: Playwright, device_name: str) -> Dict[str, Any]:
    """
    Look up a Playwright device descriptor usable as new_context keyword arguments
    """
    descriptor = dict(playwright.devices[device_name])
    descriptor.pop("default_browser_type", None)
    return descriptor


def choose_device(playwright: Playwright, fingerprint: Optional[FingerprintConfig]) -> Tuple[str, Dict[str, Any]]:
    """
    Pick the device profile for a context

    Uses the persisted fingerprint device when it is a desktop profile
    Playwright knows, otherwise a random desktop profile.
    """
    if (
        fingerprint
        and fingerprint.device_name in DESKTOP_DEVICES
        and fingerprint.device_name in playwright.devices
    ):
        device_name = fingerprint.device_name
    else:
        device_name = random.choice(DESKTOP_DEVICES)

    return device_name, get_device_descriptor(playwright, device_name)
