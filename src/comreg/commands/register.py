"""
COM registration command for WiX sources.

Registers a file (e.g. *.dll, *.ocx) in the registry at install time without
self-registration: heat.exe extracts the registry entries at build time and
they are added to the File and Component that install the binary. Files that
have no registration entries stay as they are.

Each request runs strictly in order: invoke heat.exe, reconcile identifiers,
splice into the tree, delete the temporary output. Any failure aborts the
request before the tree is modified.

Usage:
    comreg register Product.wxs CSScriptLibrary.dll
    comreg register Product.wxs CSScriptLibrary2.dll --com-objects --override-defaults --heat-arg=-gg
    comreg args Files/CSScriptLibrary.dll
"""

import logging
from dataclasses import dataclass
from pathlib import Path, PureWindowsPath
from typing import Optional

from comreg.errors import ComRegError, TargetTreeError
from comreg.heat.client import HeatClient, HeatSettings, RegisterCom
from comreg.heat.reconcile import ExtractionResult, reconcile
from comreg.heat.splice import cleanup, splice
from comreg.utils.config import get_build_config, get_heat_config, get_register_config
from comreg.utils.repo import find_repo_root
from comreg.utils.wix import TargetContext, load_document, save_document

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class BuildContext:
    """Build-level settings a registration reads but never changes."""

    source_base_dir: Path = Path(".")
    out_dir: Path = Path(".")
    # Either flag keeps the heat.exe output for inspection.
    preserve_temp_files: bool = False
    package_preserve_temp_files: bool = False

    @property
    def keep_temp_files(self) -> bool:
        return self.preserve_temp_files or self.package_preserve_temp_files

    @classmethod
    def from_config(cls, config: dict) -> "BuildContext":
        return cls(
            source_base_dir=Path(config.get("source_base_dir", ".")),
            out_dir=Path(config.get("out_dir", ".")),
            preserve_temp_files=bool(config.get("preserve_temp_files", False)),
            package_preserve_temp_files=bool(config.get("package_preserve_temp_files", False)),
        )

    def source_path(self, source: str) -> Path:
        """Resolve a File/@Source value against the source base directory."""
        return Path.cwd() / self.source_base_dir / source

    def output_path(self, source: Path) -> Path:
        # WiX sources use Windows separators even when built elsewhere.
        return self.out_dir / f"{PureWindowsPath(str(source)).name}.wxs"


@dataclass(frozen=True)
class RegistrationRequest:
    """One binary to register: where it sits in the tree and how to harvest it."""

    target: TargetContext
    options: RegisterCom
    build: BuildContext

    @property
    def source_path(self) -> Path:
        if not self.target.source:
            raise TargetTreeError(f"File '{self.target.file_id}' has no Source attribute")
        return self.build.source_path(self.target.source)

    @property
    def output_path(self) -> Path:
        return self.build.output_path(self.source_path)


class ComRegistrar:
    """Run registration requests against a heat.exe client."""

    def __init__(self, client: Optional[HeatClient] = None):
        self.client = client or HeatClient()

    def arguments(self, request: RegistrationRequest) -> list:
        return self.client.build_arguments(
            request.source_path, request.output_path, request.options
        )

    def register(self, request: RegistrationRequest) -> ExtractionResult:
        """
        Harvest registry entries for one file and add them to its tree.

        Returns:
            The spliced ExtractionResult (empty if the file has nothing to register)

        Raises:
            HeatError: heat.exe failed
            ReconcileError: heat.exe output was unusable
            TargetTreeError: The File has no Source
        """
        source = request.source_path
        output = request.output_path
        output.parent.mkdir(parents=True, exist_ok=True)

        logger.info(
            "Harvesting %s: heat %s",
            source.name,
            self.client.command_line(source, output, request.options),
        )
        self.client.run(self.arguments(request), hide_warnings=request.options.hide_warnings)

        result = reconcile(output, request.target)
        splice(result, request.target)
        cleanup(output, preserve=request.build.keep_temp_files)
        return result


class RegisterCommand:
    """CLI-facing command: register one File of a .wxs document."""

    def __init__(self, repo_root: Path = None):
        self.repo_root = repo_root or find_repo_root()
        self.heat_config = get_heat_config(self.repo_root)
        self.build_config = get_build_config(self.repo_root)
        self.register_config = get_register_config(self.repo_root)

    def _options(
        self,
        create_com_objects: bool = False,
        override_defaults: bool = False,
        hide_warnings: bool = False,
        heat_arguments: Optional[list] = None,
    ) -> RegisterCom:
        """Merge CLI flags over the configured defaults."""
        defaults = RegisterCom.from_config(self.register_config)
        return RegisterCom(
            create_com_objects=create_com_objects or defaults.create_com_objects,
            heat_arguments=list(defaults.heat_arguments) + list(heat_arguments or []),
            override_defaults=override_defaults or defaults.override_defaults,
            hide_warnings=hide_warnings or defaults.hide_warnings,
        )

    def _build(
        self,
        source_base_dir: Optional[Path] = None,
        out_dir: Optional[Path] = None,
        preserve_temp_files: bool = False,
    ) -> BuildContext:
        build = BuildContext.from_config(self.build_config)
        return BuildContext(
            source_base_dir=source_base_dir or build.source_base_dir,
            out_dir=out_dir or build.out_dir,
            preserve_temp_files=preserve_temp_files or build.preserve_temp_files,
            package_preserve_temp_files=build.package_preserve_temp_files,
        )

    def _registrar(self) -> ComRegistrar:
        return ComRegistrar(HeatClient(HeatSettings.from_config(self.heat_config)))

    def register(
        self,
        wxs: Path,
        file_id: str,
        output: Optional[Path] = None,
        source_base_dir: Optional[Path] = None,
        out_dir: Optional[Path] = None,
        preserve_temp_files: bool = False,
        **option_flags,
    ) -> int:
        """
        Register the File with Id `file_id` in `wxs` and write the document.

        Returns:
            0 on success, 1 on error
        """
        try:
            tree = load_document(wxs)
            target = TargetContext.from_file_id(tree.getroot(), file_id)
            request = RegistrationRequest(
                target=target,
                options=self._options(**option_flags),
                build=self._build(source_base_dir, out_dir, preserve_temp_files),
            )
            result = self._registrar().register(request)
        except ComRegError as e:
            print(f"Error: {e}")
            return 1
        except (OSError, SyntaxError) as e:
            # ET.ParseError is a SyntaxError subclass
            print(f"Error: cannot read {wxs}: {e}")
            return 1

        destination = output or wxs
        save_document(tree, destination)

        if result.is_empty:
            print(f"{file_id}: no registration entries found")
        else:
            print(
                f"{file_id}: added {len(result.file_children)} file and "
                f"{len(result.component_children)} component entries -> {destination}"
            )
        return 0

    def show_arguments(
        self,
        source: Path,
        out_dir: Optional[Path] = None,
        **option_flags,
    ) -> int:
        """Print the heat.exe command line that registering `source` would run."""
        build = self._build(out_dir=out_dir)
        options = self._options(**option_flags)
        client = HeatClient(HeatSettings.from_config(self.heat_config))
        output = build.output_path(source)
        print(f"{client.heat_path} {client.command_line(source, output, options)}")
        return 0
