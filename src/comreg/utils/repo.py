"""
Installer project layout.

An installer project is marked by a .comreg/ directory holding config.yaml.
Commands started anywhere below it (e.g. from installer/wix/) resolve
Source paths and the heat.exe output directory against that project root.
"""

from pathlib import Path

COMREG_DIR = ".comreg"
CONFIG_FILE = "config.yaml"


def config_path(repo_root: Path) -> Path:
    """Path of the project's .comreg/config.yaml (may not exist)."""
    return repo_root / COMREG_DIR / CONFIG_FILE


def find_repo_root(start: Path = None) -> Path:
    """
    Find the installer project root containing .comreg/.

    Args:
        start: Directory to search upward from (default: cwd)

    Returns:
        Nearest ancestor of `start` (inclusive) with a .comreg/ directory, or
        `start` itself when there is none; comreg then runs on built-in defaults.
    """
    origin = (start or Path.cwd()).resolve()

    for candidate in (origin, *origin.parents):
        if (candidate / COMREG_DIR).is_dir():
            return candidate

    return origin
