"""Build revision lookup for the outbound User-Agent."""

from __future__ import annotations

import os
import subprocess
from functools import lru_cache
from pathlib import Path

PRODUCT_NAME = "zipstreamer"
REVISION_ENV = "ZIPSTREAMER_REVISION"
FALLBACK_REVISION = "dev"


@lru_cache(maxsize=1)
def get_vcs_revision() -> str:
    """Return the first 8 characters of the build revision, or "dev".

    The revision comes from ``ZIPSTREAMER_REVISION`` when set (container
    builds), otherwise from the git checkout the package lives in.
    """
    revision = os.environ.get(REVISION_ENV, "").strip()
    if revision:
        return revision[:8]

    try:
        result = subprocess.run(
            ["git", "rev-parse", "HEAD"],
            cwd=Path(__file__).resolve().parent,
            capture_output=True,
            text=True,
            timeout=5,
        )
    except (OSError, subprocess.SubprocessError):
        return FALLBACK_REVISION

    if result.returncode != 0 or not result.stdout.strip():
        return FALLBACK_REVISION
    return result.stdout.strip()[:8]


def user_agent() -> str:
    return f"{PRODUCT_NAME}/{get_vcs_revision()}"
