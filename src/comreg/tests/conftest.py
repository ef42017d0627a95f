"""
Shared fixtures for comreg tests.

heat.exe only exists on Windows build machines, so `fake_heat` replaces
subprocess.run with a recorder that writes a canned heat.exe fragment to the
requested -out path.
"""
import subprocess
import xml.etree.ElementTree as ET
from pathlib import Path
from typing import List, Optional

import pytest

from comreg.commands.register import BuildContext
from comreg.tests.shared_fixtures import HEAT_BANNER, HEAT_OUTPUT, PRODUCT_WXS
from comreg.utils.wix import TargetContext


class FakeHeat:
    """Stand-in for subprocess.run that behaves like heat.exe."""

    def __init__(self):
        self.calls: List[List[str]] = []
        self.returncode = 0
        self.stdout = HEAT_BANNER
        self.stderr = ""
        self.output: Optional[str] = HEAT_OUTPUT
        # When set, behave like heat.exe hanging past subprocess.run's timeout.
        self.hang_after: Optional[float] = None

    def __call__(self, cmd, **kwargs):
        self.calls.append(list(cmd))
        if self.hang_after is not None:
            raise subprocess.TimeoutExpired(cmd, self.hang_after)
        if self.returncode == 0 and self.output is not None:
            out = Path(cmd[cmd.index("-out") + 1])
            out.write_text(self.output, encoding="utf-8")
        return subprocess.CompletedProcess(cmd, self.returncode, self.stdout, self.stderr)

    @property
    def arguments(self) -> List[str]:
        """Arguments of the last call, without the executable."""
        return self.calls[-1][1:]


@pytest.fixture
def fake_heat(monkeypatch):
    """Replace subprocess.run inside the heat client with a FakeHeat."""
    fake = FakeHeat()
    monkeypatch.setattr("comreg.heat.client.subprocess.run", fake)
    return fake


@pytest.fixture
def product_root() -> ET.Element:
    """Parsed PRODUCT_WXS root element."""
    return ET.fromstring(PRODUCT_WXS)


@pytest.fixture
def target(product_root) -> TargetContext:
    """TargetContext for the CSScriptLibrary.dll File."""
    return TargetContext.from_file_id(product_root, "CSScriptLibrary.dll")


@pytest.fixture
def build_context(tmp_path) -> BuildContext:
    """BuildContext rooted in tmp_path with output under obj/."""
    return BuildContext(source_base_dir=tmp_path, out_dir=tmp_path / "obj")


@pytest.fixture
def heat_output_file(tmp_path) -> Path:
    """HEAT_OUTPUT written to disk."""
    path = tmp_path / "CSScriptLibrary.dll.wxs"
    path.write_text(HEAT_OUTPUT, encoding="utf-8")
    return path
