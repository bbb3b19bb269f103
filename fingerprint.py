"""
Browser Fingerprint Module
Derives a plausible desktop browser identity from host machine signals
"""

import time
from datetime import datetime
from typing import Optional

from loguru import logger

from models import FingerprintConfig


# Desktop device profiles (Playwright device descriptor names)
DESKTOP_DEVICES = [
    "Desktop Chrome",
    "Desktop Edge",
    "Desktop Firefox",
    "Desktop Safari",
]

# Synthesized fingerprints always use this profile, whatever the host OS
DEFAULT_DEVICE = "Desktop Chrome"

DEFAULT_LOCALE = "en-US"
DEFAULT_TIMEZONE = "America/New_York"

# (lower, upper, timezone): lower < offset <= upper, offsets in minutes
# behind UTC (negative east of Greenwich). Checked in order, first match wins.
TIMEZONE_RANGES = [
    (-600, -480, "Asia/Shanghai"),
    (float("-inf"), -540, "Asia/Tokyo"),
    (-480, -420, "Asia/Bangkok"),
    (-60, 0, "Europe/London"),
    (0, 60, "Europe/Berlin"),
    (240, 300, "America/New_York"),
]


def get_host_utc_offset() -> int:
    """Minutes the local clock is behind UTC (UTC+8 gives -480)"""
    return -time.localtime().tm_gmtoff // 60


def timezone_for_offset(utc_offset_minutes: int) -> str:
    """
    Map a UTC offset to a representative timezone

    This is a coarse bucket table, not a timezone database lookup.
    Unmatched offsets fall back to America/New_York.
    """
    for lower, upper, timezone_id in TIMEZONE_RANGES:
        if lower < utc_offset_minutes <= upper:
            return timezone_id
    return DEFAULT_TIMEZONE


def color_scheme_for_hour(hour: int) -> str:
    """Dark between 19:00 and 07:00, light otherwise"""
    return "dark" if hour >= 19 or hour < 7 else "light"


def get_host_machine_config(
    user_locale: Optional[str] = None,
    host_locale: Optional[str] = None,
    utc_offset_minutes: Optional[int] = None,
    hour: Optional[int] = None,
) -> FingerprintConfig:
    """
    Build a fingerprint that matches the host machine

    Args:
        user_locale: Locale requested by the caller (takes precedence)
        host_locale: Locale reported by the host (e.g. from LANG)
        utc_offset_minutes: Host UTC offset (default: read from the local clock)
        hour: Local hour of day (default: current hour)

    Returns:
        FingerprintConfig for a desktop Chrome profile
    """
    if utc_offset_minutes is None:
        utc_offset_minutes = get_host_utc_offset()
    if hour is None:
        hour = datetime.now().hour

    fingerprint = FingerprintConfig(
        device_name=DEFAULT_DEVICE,
        locale=user_locale or host_locale or DEFAULT_LOCALE,
        timezone_id=timezone_for_offset(utc_offset_minutes),
        color_scheme=color_scheme_for_hour(hour),
        reduced_motion="no-preference",
        forced_colors="none",
    )

    logger.debug(
        f"Host fingerprint: offset={utc_offset_minutes}min hour={hour} -> "
        f"{fingerprint.timezone_id}, {fingerprint.color_scheme}"
    )
    return fingerprint
