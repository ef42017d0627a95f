#!/usr/bin/env python3
"""
comreg - build-time COM registration for WiX installers.

Harvests registry entries for COM binaries (DLL/OCX) with heat.exe and merges
them into the File and Component that install each binary, replacing
install-time self-registration.

Usage:
    comreg register Product.wxs CSScriptLibrary.dll          # Register one File by Id
    comreg register Product.wxs Lib.dll --com-objects        # Emit Class/TypeLib/ProgId
    comreg register Product.wxs Lib.dll --heat-arg=-gg --override-defaults
    comreg register Product.wxs Lib.dll -o Product.reg.wxs   # Write to a new file
    comreg args Files/CSScriptLibrary.dll                    # Show heat.exe command line
    comreg --help                                            # Show help
"""

import argparse
import logging
import sys
from pathlib import Path

from comreg.commands.register import RegisterCommand


def _add_option_flags(parser: argparse.ArgumentParser) -> None:
    """Flags mirroring the RegisterCom options."""
    parser.add_argument(
        "--com-objects",
        action="store_true",
        dest="create_com_objects",
        help="Emit COM objects instead of plain registry entries (omits -scom)"
    )
    parser.add_argument(
        "--override-defaults",
        action="store_true",
        help="Omit the default heat.exe arguments -ag and -svb6"
    )
    parser.add_argument(
        "--hide-warnings",
        action="store_true",
        help="Do not forward heat.exe warnings"
    )
    parser.add_argument(
        "--heat-arg",
        action="append",
        dest="heat_arguments",
        default=[],
        metavar="ARG",
        help="Additional heat.exe argument (repeatable; use --heat-arg=-gg)"
    )
    parser.add_argument(
        "--out-dir",
        type=Path,
        help="Directory for the temporary heat.exe output"
    )


def main():
    """Main CLI entry point."""
    parser = argparse.ArgumentParser(
        description="comreg - harvest COM registration into WiX sources",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s register Product.wxs CSScriptLibrary.dll
                                          Add registry entries to File 'CSScriptLibrary.dll'
  %(prog)s register Product.wxs Lib.dll --com-objects --hide-warnings
  %(prog)s register Product.wxs Lib.dll --override-defaults --heat-arg=-gg
  %(prog)s register Product.wxs Lib.dll --preserve-temp-files
                                          Keep <out-dir>/Lib.dll.wxs for inspection
  %(prog)s args Files/Lib.dll             Print the heat.exe command line

Configuration (.comreg/config.yaml):
  heat:      wix_location, header_lines, timeout
  build:     source_base_dir, out_dir, preserve_temp_files
  register:  create_com_objects, override_defaults, hide_warnings, heat_arguments
        """
    )
    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Verbose output"
    )
    parser.add_argument(
        "--repo",
        type=str,
        help="Project root containing .comreg/ (default: auto-detect)"
    )

    subparsers = parser.add_subparsers(dest="command", help="Commands")

    # ----- comreg register <wxs> <file-id> -----
    register_parser = subparsers.add_parser(
        "register",
        help="Register a File of a .wxs document",
        description="Run heat.exe on a File's source and merge its registry entries"
    )
    register_parser.add_argument(
        "wxs",
        type=Path,
        help="WiX source document"
    )
    register_parser.add_argument(
        "file_id",
        type=str,
        help="Id of the File element to register"
    )
    _add_option_flags(register_parser)
    register_parser.add_argument(
        "--source-base-dir",
        type=Path,
        help="Directory File/@Source paths are relative to"
    )
    register_parser.add_argument(
        "--preserve-temp-files",
        action="store_true",
        help="Keep the heat.exe output file"
    )
    register_parser.add_argument(
        "--output", "-o",
        type=Path,
        help="Write the updated document here instead of in place"
    )

    # ----- comreg args <source> -----
    args_parser = subparsers.add_parser(
        "args",
        help="Show the heat.exe command line for a file",
        description="Print the heat.exe invocation without running it"
    )
    args_parser.add_argument(
        "source",
        type=Path,
        help="Binary to harvest"
    )
    _add_option_flags(args_parser)

    args = parser.parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(levelname)s %(name)s: %(message)s",
    )

    if args.command is None:
        parser.print_help()
        return 0

    repo_path = Path(args.repo) if args.repo else None
    command = RegisterCommand(repo_root=repo_path)

    option_flags = dict(
        create_com_objects=args.create_com_objects,
        override_defaults=args.override_defaults,
        hide_warnings=args.hide_warnings,
        heat_arguments=args.heat_arguments,
    )

    if args.command == "register":
        return command.register(
            wxs=args.wxs,
            file_id=args.file_id,
            output=args.output,
            source_base_dir=args.source_base_dir,
            out_dir=args.out_dir,
            preserve_temp_files=args.preserve_temp_files,
            **option_flags,
        )

    elif args.command == "args":
        return command.show_arguments(
            source=args.source,
            out_dir=args.out_dir,
            **option_flags,
        )

    parser.print_help()
    return 1


if __name__ == "__main__":
    sys.exit(main())
