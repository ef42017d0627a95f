"""
heat.exe client for COM registration harvesting.

Wraps the WiX `heat.exe` harvester. Each call harvests a single binary
(`heat file ...`) into a temporary .wxs fragment that the reconciler reads back.

Usage:
    client = HeatClient(HeatSettings(wix_location=r"C:\\WiX\\bin"))
    args = client.build_arguments(source, output, RegisterCom())
    client.run(args)
"""

import logging
import os
import shutil
import subprocess
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

from comreg.errors import HeatError, HeatNotFoundError

logger = logging.getLogger(__name__)

HEAT_EXE = "heat.exe"

# Passed unless RegisterCom.override_defaults is set:
#   -ag    generate component GUIDs at compile time
#   -svb6  suppress VB6 COM registration entries
DEFAULT_ARGUMENTS = ("-ag", "-svb6")

# Passed unless RegisterCom.create_com_objects is set: emit plain
# RegistryValue entries instead of Class/TypeLib/ProgId elements.
SUPPRESS_COM_ARGUMENT = "-scom"


@dataclass(frozen=True)
class RegisterCom:
    """
    Options for registering one file (e.g. *.dll, *.ocx) via heat.exe.

    Attributes:
        create_com_objects: Emit COM objects (Class, TypeLib, ProgId) instead of
            plain registry entries. Easier to read, but heat.exe sometimes leaves
            attributes empty, which candle rejects. Adds '-scom' when False.
        heat_arguments: Additional arguments passed to heat.exe verbatim.
        override_defaults: Omit the default arguments '-ag' and '-svb6'.
        hide_warnings: Stop forwarding heat.exe warnings to the log.
    """

    create_com_objects: bool = False
    heat_arguments: Tuple[str, ...] = ()
    override_defaults: bool = False
    hide_warnings: bool = False

    def __post_init__(self):
        # Accept any iterable (lists from YAML/argparse) but store a tuple;
        # a lone string is one argument, not a sequence of characters.
        arguments = self.heat_arguments or ()
        if isinstance(arguments, str):
            arguments = (arguments,)
        object.__setattr__(self, "heat_arguments", tuple(str(arg) for arg in arguments))

    @classmethod
    def from_config(cls, config: Dict[str, Any]) -> "RegisterCom":
        return cls(
            create_com_objects=bool(config.get("create_com_objects", False)),
            heat_arguments=config.get("heat_arguments") or (),
            override_defaults=bool(config.get("override_defaults", False)),
            hide_warnings=bool(config.get("hide_warnings", False)),
        )

    def switches(self) -> List[str]:
        """heat.exe switches in invocation order: defaults, -scom, extras."""
        switches = []
        if not self.override_defaults:
            switches.extend(DEFAULT_ARGUMENTS)
        if not self.create_com_objects:
            switches.append(SUPPRESS_COM_ARGUMENT)
        switches.extend(self.heat_arguments)
        return switches


@dataclass(frozen=True)
class HeatSettings:
    """Where heat.exe lives and how its console output is interpreted."""

    wix_location: Optional[Path] = None
    # heat.exe prints a banner (name/version, copyright, blank line) on every
    # run; anything beyond this many lines is treated as warnings.
    header_lines: int = 3
    timeout: Optional[float] = None

    @classmethod
    def from_config(cls, config: Dict[str, Any]) -> "HeatSettings":
        wix_location = config.get("wix_location")
        header_lines = config.get("header_lines")
        return cls(
            wix_location=Path(wix_location) if wix_location else None,
            header_lines=3 if header_lines is None else int(header_lines),
            timeout=config.get("timeout"),
        )


def resolve_heat_path(wix_location: Optional[Path] = None) -> str:
    """
    Locate heat.exe.

    Order: explicit WiX location, then %WIX%\\bin (set by the WiX installer),
    then `heat` on PATH. Falls back to the bare executable name.
    """
    if wix_location:
        return str(Path(wix_location) / HEAT_EXE)

    wix_root = os.environ.get("WIX")
    if wix_root:
        return str(Path(wix_root) / "bin" / HEAT_EXE)

    return shutil.which("heat") or HEAT_EXE


class HeatClient:
    """Run heat.exe as a blocking child process."""

    def __init__(self, settings: Optional[HeatSettings] = None):
        self.settings = settings or HeatSettings()
        self.heat_path = resolve_heat_path(self.settings.wix_location)

    def build_arguments(self, source: Path, output: Path, options: RegisterCom) -> List[str]:
        """Assemble the heat.exe argument vector (without the executable)."""
        return ["file", str(source)] + options.switches() + ["-out", str(output)]

    def command_line(self, source: Path, output: Path, options: RegisterCom) -> str:
        """Render the arguments the way they appear on a heat.exe command line."""
        parts = [f'file "{source}"'] + options.switches() + [f'-out "{output}"']
        return " ".join(parts)

    def run(self, arguments: List[str], hide_warnings: bool = False) -> str:
        """
        Run heat.exe and return its standard output.

        Raises:
            HeatNotFoundError: heat.exe could not be started
            HeatError: heat.exe exited with a non-zero code; the message is the
                tool's own diagnostic output
        """
        cmd = [self.heat_path] + list(arguments)
        logger.debug("heat %s", " ".join(arguments))

        try:
            result = subprocess.run(
                cmd, capture_output=True, text=True,
                timeout=self.settings.timeout,
            )
        except FileNotFoundError:
            raise HeatNotFoundError(
                f"heat.exe not found: {self.heat_path}\n"
                "Install the WiX Toolset or set heat.wix_location in .comreg/config.yaml"
            )
        except subprocess.TimeoutExpired as e:
            raise HeatError(
                f"heat.exe timed out after {e.timeout} seconds",
                returncode=-1,
            )

        stdout = result.stdout or ""
        stderr = result.stderr or ""

        if result.returncode != 0:
            # heat.exe reports its errors on stdout, not stderr.
            message = (
                stdout.strip()
                or stderr.strip()
                or f"heat.exe exited with code {result.returncode}"
            )
            raise HeatError(message, returncode=result.returncode, stdout=stdout, stderr=stderr)

        lines = stdout.splitlines()
        if len(lines) > self.settings.header_lines and not hide_warnings:
            for line in lines:
                logger.warning("%s", line)

        return stdout
