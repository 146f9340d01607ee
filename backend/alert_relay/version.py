"""
PURPOSE: Manage version information for Alert Relay.

This module reads version data from version.json and exposes it through
a get_version() function. Version data is cached after the first read
to minimize file I/O operations.
"""

import json
from pathlib import Path
from typing import Any, Dict, Optional

_version_cache: Optional[Dict[str, Any]] = None


def get_version() -> Dict[str, Any]:
    """
    PURPOSE: Retrieve version information for Alert Relay.

    Reads version.json shipped inside the package and caches the result
    in a module-level variable. Subsequent calls return the cached
    version data without re-reading the file.

    Returns:
        Dict[str, Any]: Version information including version string,
            codename, updated_at timestamp, and changelog entries.

    Raises:
        FileNotFoundError: If version.json is missing from the package.
        json.JSONDecodeError: If version.json is invalid JSON.
    """
    global _version_cache

    if _version_cache is not None:
        return _version_cache

    version_file: Path = Path(__file__).parent / "version.json"

    with open(version_file, "r", encoding="utf-8") as f:
        _version_cache = json.load(f)

    return _version_cache
