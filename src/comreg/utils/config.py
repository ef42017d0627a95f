"""
comreg Configuration Loader.

Loads configuration from .comreg/config.yaml for heat.exe invocation and
build-directory layout.
"""

import copy
import yaml
from pathlib import Path
from typing import Dict, Any

from comreg.utils.repo import config_path


HEAT_DEFAULTS = {
    "wix_location": None,
    "header_lines": 3,
    "timeout": None,
}

BUILD_DEFAULTS = {
    "source_base_dir": ".",
    "out_dir": ".",
    "preserve_temp_files": False,
    "package_preserve_temp_files": False,
}

REGISTER_DEFAULTS = {
    "create_com_objects": False,
    "override_defaults": False,
    "hide_warnings": False,
    "heat_arguments": [],
}


def load_comreg_config(repo_root: Path) -> Dict[str, Any]:
    """
    Load .comreg/config.yaml configuration file.

    Args:
        repo_root: Project root path

    Returns:
        Parsed configuration dict, or empty dict if file doesn't exist

    Example config:
        heat:
          wix_location: C:/Program Files (x86)/WiX Toolset v3.11/bin
          header_lines: 3
        build:
          out_dir: build/wix
          preserve_temp_files: true
        register:
          heat_arguments:
            - -sw5150
    """
    path = config_path(repo_root)

    if not path.exists():
        return {}

    try:
        with open(path) as f:
            config = yaml.safe_load(f)
            return config if isinstance(config, dict) else {}
    except (OSError, yaml.YAMLError):
        return {}


def _section(repo_root: Path, name: str, defaults: Dict[str, Any]) -> Dict[str, Any]:
    config = load_comreg_config(repo_root)
    section = config.get(name) or {}

    for key, default_value in defaults.items():
        if key not in section:
            section[key] = copy.copy(default_value)

    return section


def get_heat_config(repo_root: Path) -> Dict[str, Any]:
    """
    Get heat.exe settings.

    Args:
        repo_root: Project root path

    Returns:
        Heat configuration dict with defaults applied
    """
    return _section(repo_root, "heat", HEAT_DEFAULTS)


def get_build_config(repo_root: Path) -> Dict[str, Any]:
    """
    Get build layout settings (source/output dirs, temp file retention).

    Relative directories are resolved against repo_root.
    """
    build_config = _section(repo_root, "build", BUILD_DEFAULTS)
    for key in ("source_base_dir", "out_dir"):
        path = Path(build_config[key])
        build_config[key] = path if path.is_absolute() else repo_root / path
    return build_config


def get_register_config(repo_root: Path) -> Dict[str, Any]:
    """Get default RegisterCom options used by the CLI."""
    register_config = _section(repo_root, "register", REGISTER_DEFAULTS)
    arguments = register_config["heat_arguments"] or []
    if isinstance(arguments, str):
        arguments = [arguments]
    register_config["heat_arguments"] = [str(arg) for arg in arguments]
    return register_config
