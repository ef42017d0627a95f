"""
Splice harvested registry entries into the caller's WiX tree and clean up.
"""

import logging
from pathlib import Path

from comreg.heat.reconcile import ExtractionResult
from comreg.utils.wix import TargetContext

logger = logging.getLogger(__name__)


def splice(result: ExtractionResult, target: TargetContext) -> int:
    """
    Append harvested children to the caller's File and Component elements.

    Files without registration data leave the tree untouched.

    Returns:
        Number of elements added
    """
    added = 0
    if result.file_children:
        target.file.extend(result.file_children)
        added += len(result.file_children)
    if result.component_children:
        target.component.extend(result.component_children)
        added += len(result.component_children)

    if added:
        logger.info("Registered %s: %d entries added", target.file_id, added)
    else:
        logger.info("No registration data for %s", target.file_id)
    return added


def cleanup(output_path: Path, preserve: bool = False) -> bool:
    """
    Delete the temporary heat.exe output unless it should be preserved.

    Returns:
        True if the file was removed
    """
    if preserve:
        logger.debug("Keeping %s", output_path)
        return False

    try:
        Path(output_path).unlink()
    except OSError as e:
        logger.warning("Could not delete temporary file %s: %s", output_path, e)
        return False
    return True
