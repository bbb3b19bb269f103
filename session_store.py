"""
Session State Management Utilities
Helper functions for saving and loading the browser storage snapshot and the
identity sidecar (fingerprint + Google domain) that accompanies it
"""

import json
from pathlib import Path
from typing import Any, Dict, Optional, Union

from loguru import logger
from playwright.async_api import BrowserContext
from pydantic import ValidationError

from models import SavedState


FINGERPRINT_SUFFIX = "-fingerprint"


def get_fingerprint_path(state_file: Union[str, Path]) -> Path:
    """
    Get the identity sidecar path for a storage snapshot path

    browser-state.json -> browser-state-fingerprint.json
    """
    state_path = Path(state_file)
    return state_path.with_name(f"{state_path.stem}{FINGERPRINT_SUFFIX}{state_path.suffix}")


def get_storage_state(state_file: Union[str, Path]) -> Optional[str]:
    """Return the snapshot path if a saved browser state exists, None otherwise"""
    state_path = Path(state_file)
    if state_path.exists():
        logger.info("📂 Found browser state file, reusing saved session to avoid bot detection")
        return str(state_path)

    logger.info("🆕 No browser state file found, a new session and fingerprint will be created")
    return None


def load_saved_state(state_file: Union[str, Path]) -> SavedState:
    """
    Load the identity sidecar for a storage snapshot

    Args:
        state_file: Storage snapshot path (sidecar path is derived from it)

    Returns:
        SavedState (empty if no sidecar exists or it cannot be parsed)
    """
    fingerprint_path = get_fingerprint_path(state_file)

    if not fingerprint_path.exists():
        logger.debug(f"No saved fingerprint found at {fingerprint_path}")
        return SavedState()

    try:
        with open(fingerprint_path, 'r', encoding='utf-8') as f:
            data = json.load(f)
        saved_state = SavedState.model_validate(data)
    except (OSError, json.JSONDecodeError, ValidationError) as e:
        logger.warning(f"⚠️ Cannot load fingerprint file {fingerprint_path}, a new fingerprint will be created: {str(e)}")
        return SavedState()

    logger.info("✅ Loaded saved browser fingerprint configuration")
    return saved_state


async def save_session_state(
    context: BrowserContext,
    state_file: Union[str, Path],
    saved_state: SavedState,
    no_save_state: bool = False
) -> bool:
    """
    Save the browser storage snapshot and the identity sidecar

    Args:
        context: Browser context whose cookies/storage are saved
        state_file: Storage snapshot path
        saved_state: Identity to write to the sidecar
        no_save_state: Skip all persistence when True

    Returns:
        bool: True if both files were written, False otherwise
    """
    if no_save_state:
        logger.info("Not saving browser state as requested")
        return False

    state_path = Path(state_file)

    try:
        logger.info("💾 Saving browser state...")
        state_path.parent.mkdir(parents=True, exist_ok=True)

        await context.storage_state(path=str(state_path))
        logger.info(f"✅ Browser state saved to: {state_path}")
    except Exception as e:
        logger.error(f"❌ Failed to save browser state: {str(e)}")
        return False

    fingerprint_path = get_fingerprint_path(state_path)
    try:
        fingerprint_path.write_text(saved_state.to_json(), encoding='utf-8')
        logger.info(f"✅ Fingerprint configuration saved to: {fingerprint_path}")
    except OSError as e:
        logger.error(f"❌ Failed to save fingerprint configuration: {str(e)}")
        return False

    return True


def get_session_info(state_file: Union[str, Path]) -> Optional[Dict[str, Any]]:
    """
    Get information about a saved session (without loading it into a browser)

    Args:
        state_file: Storage snapshot path

    Returns:
        Dict with session info or None if no snapshot exists
    """
    state_path = Path(state_file)
    if not state_path.exists():
        return None

    try:
        with open(state_path, 'r', encoding='utf-8') as f:
            session_data = json.load(f)
    except (OSError, json.JSONDecodeError) as e:
        logger.error(f"Error reading session file {state_path}: {str(e)}")
        return None

    saved_state = load_saved_state(state_path)
    fingerprint = saved_state.fingerprint

    return {
        'path': str(state_path),
        'cookie_count': len(session_data.get('cookies', [])),
        'origin_count': len(session_data.get('origins', [])),
        'google_domain': saved_state.google_domain,
        'device_name': fingerprint.device_name if fingerprint else None,
        'locale': fingerprint.locale if fingerprint else None,
        'timezone_id': fingerprint.timezone_id if fingerprint else None,
        'modified': state_path.stat().st_mtime,
    }
