"""
End-to-end registration: invoke -> reconcile -> splice -> cleanup.

heat.exe is replaced by the fake_heat fixture; the platform test at the end
runs against a real WiX installation when one is available.
"""
import os
import shutil
import sys
import xml.etree.ElementTree as ET
from pathlib import Path

import pytest
import yaml

from comreg.commands.register import (
    BuildContext,
    ComRegistrar,
    RegisterCommand,
    RegistrationRequest,
)
from comreg.errors import HeatError, TargetTreeError
from comreg.heat.client import HeatClient, RegisterCom
from comreg.tests.shared_fixtures import (
    GEN_FILE_ID,
    HEAT_OUTPUT_EMPTY,
    PRODUCT_WXS,
)
from comreg.utils.wix import TargetContext, local_name


def _request(target, build, **options) -> RegistrationRequest:
    return RegistrationRequest(target=target, options=RegisterCom(**options), build=build)


def test_default_registration(fake_heat, target, build_context):
    """
    Given: CSScriptLibrary.dll with the default RegisterCom configuration
    When: Registering
    Then: heat.exe gets defaults + -scom, File/Component gain the harvested
          children, and the temporary output is deleted
    """
    request = _request(target, build_context)

    result = ComRegistrar().register(request)

    assert fake_heat.arguments == [
        "file", str(request.source_path),
        "-ag", "-svb6", "-scom",
        "-out", str(request.output_path),
    ]
    assert request.output_path == build_context.out_dir / "CSScriptLibrary.dll.wxs"
    assert [local_name(e.tag) for e in target.file] == ["TypeLib"]
    assert len(result.component_children) == 3
    assert len(target.component) == 4
    assert not request.output_path.exists()


def test_overridden_registration(fake_heat, product_root, build_context):
    """
    Given: CSScriptLibrary2.dll with COM objects, overridden defaults, -gg, hidden warnings
    When: Registering
    Then: heat.exe gets exactly file <src> -gg -out <out>
    """
    target = TargetContext.from_file_id(product_root, "CSScriptLibrary2.dll")
    request = _request(
        target, build_context,
        create_com_objects=True,
        heat_arguments=["-gg"],
        override_defaults=True,
        hide_warnings=True,
    )

    ComRegistrar().register(request)

    assert fake_heat.arguments == [
        "file", str(request.source_path), "-gg", "-out", str(request.output_path),
    ]
    assert HeatClient().command_line(request.source_path, request.output_path, request.options) == (
        f'file "{request.source_path}" -gg -out "{request.output_path}"'
    )


def test_hidden_warnings_during_registration(fake_heat, target, build_context, caplog):
    fake_heat.stdout = "banner\n" * 20

    ComRegistrar().register(_request(target, build_context, hide_warnings=True))

    assert not [r for r in caplog.records if r.name == "comreg.heat.client"]


def test_heat_failure_leaves_tree_unmodified(fake_heat, product_root, target, build_context):
    """
    Given: heat.exe exits with code 1 and stdout 'error: invalid file'
    When: Registering
    Then: HeatError with that exact message, and the target tree is unchanged
    """
    fake_heat.returncode = 1
    fake_heat.stdout = "error: invalid file"
    before = ET.tostring(product_root)

    with pytest.raises(HeatError) as excinfo:
        ComRegistrar().register(_request(target, build_context))

    assert str(excinfo.value) == "error: invalid file"
    assert ET.tostring(product_root) == before


def test_no_registration_data_is_not_an_error(fake_heat, target, build_context):
    fake_heat.output = HEAT_OUTPUT_EMPTY
    component_children = len(target.component)

    result = ComRegistrar().register(_request(target, build_context))

    assert result.is_empty
    assert len(target.file) == 0
    assert len(target.component) == component_children


@pytest.mark.parametrize("preserve, package_preserve, kept", [
    (False, False, False),
    (True, False, True),
    (False, True, True),
    (True, True, True),
])
def test_temp_file_retention(fake_heat, target, tmp_path, preserve, package_preserve, kept):
    """
    Given: The build-level and package-level preserve flags
    When: Registering
    Then: The heat.exe output survives if either flag is set
    """
    build = BuildContext(
        source_base_dir=tmp_path,
        out_dir=tmp_path / "obj",
        preserve_temp_files=preserve,
        package_preserve_temp_files=package_preserve,
    )
    request = _request(target, build)

    ComRegistrar().register(request)

    assert request.output_path.exists() is kept


def test_no_generated_identifiers_after_registration(fake_heat, product_root, target, build_context):
    ComRegistrar().register(_request(target, build_context))

    assert GEN_FILE_ID not in ET.tostring(product_root, encoding="unicode")


def test_file_without_source_is_rejected(build_context):
    root = ET.fromstring(
        '<Wix><Directory Id="D"><Component Id="C"><File Id="F" /></Component></Directory></Wix>'
    )
    request = _request(TargetContext.from_file_id(root, "F"), build_context)

    with pytest.raises(TargetTreeError, match="no Source"):
        ComRegistrar().register(request)


def test_output_name_from_windows_source(tmp_path):
    build = BuildContext(out_dir=tmp_path)

    assert build.output_path(Path("Files\\CSScriptLibrary.dll")) == tmp_path / "CSScriptLibrary.dll.wxs"


def _write_project(tmp_path: Path) -> Path:
    config_dir = tmp_path / ".comreg"
    config_dir.mkdir()
    (config_dir / "config.yaml").write_text(yaml.safe_dump({
        "build": {"out_dir": "obj"},
        "register": {"heat_arguments": ["-sw5150"]},
    }))
    wxs = tmp_path / "Product.wxs"
    wxs.write_text(PRODUCT_WXS, encoding="utf-8")
    return wxs


def test_register_command_updates_document(fake_heat, tmp_path, monkeypatch):
    """
    Given: A project with .comreg/config.yaml and a Product.wxs
    When: Running RegisterCommand.register for one File Id
    Then: The document is rewritten with registry entries, config arguments are
          passed to heat.exe, and the temp output under obj/ is gone
    """
    monkeypatch.chdir(tmp_path)
    wxs = _write_project(tmp_path)

    rc = RegisterCommand(repo_root=tmp_path).register(wxs, "CSScriptLibrary.dll")

    assert rc == 0
    assert "-sw5150" in fake_heat.arguments
    root = ET.parse(str(wxs)).getroot()
    component = TargetContext.from_file_id(root, "CSScriptLibrary.dll").component
    assert [local_name(e.tag) for e in component].count("RegistryValue") == 3
    assert root.tag == "{http://schemas.microsoft.com/wix/2006/wi}Wix"
    assert "ns0:" not in wxs.read_text(encoding="utf-8")
    assert not (tmp_path / "obj" / "CSScriptLibrary.dll.wxs").exists()


def test_register_command_writes_to_output(fake_heat, tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    wxs = _write_project(tmp_path)
    output = tmp_path / "Product.registered.wxs"

    rc = RegisterCommand(repo_root=tmp_path).register(
        wxs, "CSScriptLibrary.dll", output=output, preserve_temp_files=True,
    )

    assert rc == 0
    assert "RegistryValue" in output.read_text(encoding="utf-8")
    assert "RegistryValue" not in wxs.read_text(encoding="utf-8")
    assert (tmp_path / "obj" / "CSScriptLibrary.dll.wxs").exists()


def test_register_command_reports_heat_failure(fake_heat, tmp_path, capsys):
    wxs = _write_project(tmp_path)
    original = wxs.read_text(encoding="utf-8")
    fake_heat.returncode = 1
    fake_heat.stdout = "error: invalid file"

    rc = RegisterCommand(repo_root=tmp_path).register(wxs, "CSScriptLibrary.dll")

    assert rc == 1
    assert "error: invalid file" in capsys.readouterr().out
    assert wxs.read_text(encoding="utf-8") == original


def test_register_command_unknown_file_id(tmp_path, capsys):
    wxs = _write_project(tmp_path)

    rc = RegisterCommand(repo_root=tmp_path).register(wxs, "Missing.dll")

    assert rc == 1
    assert "No File element with Id 'Missing.dll'" in capsys.readouterr().out


def _real_heat_available() -> bool:
    return sys.platform == "win32" and bool(os.environ.get("WIX") or shutil.which("heat"))


@pytest.mark.platform
@pytest.mark.skipif(not _real_heat_available(), reason="heat.exe (WiX Toolset) not available")
def test_real_heat_on_plain_executable(tmp_path):
    """
    Given: A real heat.exe and a binary with no COM registration (python.exe)
    When: Registering it
    Then: heat.exe succeeds, nothing is spliced, and the temp output is removed
    """
    source = Path(sys.executable)
    root = ET.fromstring(
        '<Wix xmlns="http://schemas.microsoft.com/wix/2006/wi">'
        '<Directory Id="INSTALLDIR"><Component Id="Component.python">'
        f'<File Id="python.exe" Source="{source.name}" />'
        '</Component></Directory></Wix>'
    )
    target = TargetContext.from_file_id(root, "python.exe")
    build = BuildContext(source_base_dir=source.parent, out_dir=tmp_path)
    request = _request(target, build, hide_warnings=True)

    result = ComRegistrar().register(request)

    assert len(result.file_children) == 0
    assert not request.output_path.exists()
