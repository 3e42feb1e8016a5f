"""Structural pre-check for uploaded artifacts.

A package is structurally valid when it ships the resource manifest. Archives
are inspected member by member; a bare file is only valid if it is the
manifest itself. The check is deterministic and never touches the network.
"""
import io
import logging
import posixpath
import zipfile
from typing import Optional

logger = logging.getLogger(__name__)

DEFAULT_MARKER = 'fxmanifest.lua'

def _basename(name: str) -> str:
    return posixpath.basename(name.replace('\\', '/')).lower()

def has_structural_marker(
    content: Optional[bytes],
    file_name: str,
    marker: str = DEFAULT_MARKER
) -> bool:
    """Check an artifact for the manifest marker.

    Args:
        content: Raw artifact bytes, None if nothing was uploaded
        file_name: Name the artifact was uploaded under
        marker: Manifest file name to look for (case-insensitive)

    Returns:
        True if the marker is present
    """
    marker = marker.lower()

    if content and zipfile.is_zipfile(io.BytesIO(content)):
        try:
            with zipfile.ZipFile(io.BytesIO(content)) as archive:
                return any(
                    _basename(name) == marker
                    for name in archive.namelist()
                    if not name.endswith('/')
                )
        except zipfile.BadZipFile as e:
            logger.warning(f"Unreadable archive {file_name}: {e}")
            return False

    return bool(content) and _basename(file_name) == marker
