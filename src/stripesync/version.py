"""
Version management for stripesync.
"""

import os
import subprocess
from typing import Optional

# Base version - update this for releases
BASE_VERSION = "0.3.0"

_REPO_ROOT = os.path.dirname(os.path.dirname(os.path.dirname(__file__)))


def _git(*args: str) -> Optional[str]:
    try:
        result = subprocess.run(["git", *args], capture_output=True, text=True, cwd=_REPO_ROOT)
    except OSError:
        return None
    if result.returncode == 0:
        return result.stdout.strip()
    return None


def get_version() -> str:
    """
    Get the current version.

    An exact ``vX.Y.Z`` tag wins, then base version + short commit SHA,
    then the base version alone.
    """
    tag = _git("describe", "--tags", "--exact-match")
    if tag:
        return tag[1:] if tag.startswith("v") else tag

    sha = _git("rev-parse", "--short", "HEAD")
    if sha:
        return f"{BASE_VERSION}+{sha}"
    return BASE_VERSION


__version__ = get_version()
