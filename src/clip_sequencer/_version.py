"""Version information for clip-sequencer.

BASE_VERSION is what pip sees. Builds that set GIT_COMMIT get a PEP 440
local suffix for display (0.3.0+1a2b3c4d).
"""

import os

BASE_VERSION = "0.3.0"


def get_git_commit() -> str:
    commit = os.environ.get("GIT_COMMIT", "").strip()
    return commit[:8] if commit and commit != "dev" else "dev"


def get_version() -> str:
    commit = get_git_commit()
    return BASE_VERSION if commit == "dev" else f"{BASE_VERSION}+{commit}"


__version__ = BASE_VERSION
VERSION = get_version()
