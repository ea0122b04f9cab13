"""Command-line entry point and the version command."""

from __future__ import annotations

import json
import platform
import sys
from dataclasses import dataclass, field
from importlib.metadata import PackageNotFoundError, version as _package_version
from typing import Any, Sequence, TextIO

PROGRAM_NAME = "terralsp"

_TRUE = {"1", "t", "T", "TRUE", "true", "True"}
_FALSE = {"0", "f", "F", "FALSE", "false", "False"}


class _FlagError(Exception):
    pass


@dataclass(frozen=True)
class BuildInfo:
    """The runtime the server runs on."""

    python: str = ""
    os: str = ""
    arch: str = ""
    compiler: str = ""

    @classmethod
    def current(cls) -> BuildInfo:
        return cls(
            python=platform.python_version(),
            os=sys.platform,
            arch=platform.machine(),
            compiler=platform.python_implementation(),
        )

    def to_dict(self) -> dict[str, str]:
        """Return the non-empty fields keyed by their JSON names."""
        fields = {
            "python": self.python,
            "os": self.os,
            "arch": self.arch,
            "compiler": self.compiler,
        }
        return {key: value for key, value in fields.items() if value}


@dataclass(frozen=True)
class VersionOutput:
    """What the version command reports."""

    version: str
    build_info: BuildInfo = field(default_factory=BuildInfo)

    def to_dict(self) -> dict[str, Any]:
        return {"version": self.version, **self.build_info.to_dict()}

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), indent=2)

    def __str__(self) -> str:
        info = self.build_info
        return (
            f"{self.version}\nplatform: {info.os}/{info.arch}\n"
            f"python: {info.python}\ncompiler: {info.compiler}"
        )


def _help_for_flags(flags: Sequence[tuple[str, str]]) -> str:
    lines = ["Options:", ""]
    for name, usage in flags:
        lines.append(f"  -{name}")
        lines.append(f"    \t{usage}")
    return "\n".join(lines) + "\n"


def _parse_bool(name: str, raw: str) -> bool:
    if raw in _TRUE:
        return True
    if raw in _FALSE:
        return False
    raise _FlagError(f'invalid boolean value "{raw}" for -{name}: parse error')


class VersionCommand:
    """Prints the version of the language server."""

    _FLAGS = (("json", "output the version information as a JSON object"),)

    def __init__(
        self,
        version: str,
        out: TextIO | None = None,
        err: TextIO | None = None,
    ) -> None:
        self.version = version
        self.out = out
        self.err = err

    def _output(self, text: str) -> None:
        print(text, file=self.out or sys.stdout)

    def _error(self, text: str) -> None:
        print(text, file=self.err or sys.stderr)

    def _parse(self, args: Sequence[str]) -> bool:
        json_output = False
        for arg in args:
            if arg == "--" or len(arg) < 2 or not arg.startswith("-"):
                break
            name = arg[2:] if arg.startswith("--") else arg[1:]
            if not name or name.startswith("-") or name.startswith("="):
                raise _FlagError(f"bad flag syntax: {arg}")
            name, has_value, raw = name.partition("=")
            if name in ("h", "help"):
                raise _FlagError("flag: help requested")
            if name != "json":
                raise _FlagError(f"flag provided but not defined: -{name}")
            json_output = _parse_bool(name, raw) if has_value else True
        return json_output

    def run(self, args: Sequence[str]) -> int:
        """Run the command and return its exit status."""
        try:
            json_output = self._parse(list(args))
        except _FlagError as exc:
            self._error(self.help())
            self._error(f"Error parsing command-line flags: {exc}")
            return 1

        output = VersionOutput(self.version, BuildInfo.current())
        self._output(output.to_json() if json_output else str(output))
        return 0

    def help(self) -> str:
        text = (
            f"\nUsage: {PROGRAM_NAME} version [-json]\n\n"
            + self.synopsis()
            + "\n\n"
            + _help_for_flags(self._FLAGS)
        )
        return text.strip()

    def synopsis(self) -> str:
        return "Displays the version of the language server"


def _installed_version() -> str:
    try:
        return _package_version(PROGRAM_NAME)
    except PackageNotFoundError:
        return "dev"


def _usage(commands: dict[str, VersionCommand]) -> str:
    lines = [f"Usage: {PROGRAM_NAME} <command> [args]", "", "Available commands are:"]
    width = max(len(name) for name in commands)
    for name, command in sorted(commands.items()):
        lines.append(f"    {name.ljust(width)}    {command.synopsis()}")
    return "\n".join(lines)


def main(argv: Sequence[str] | None = None) -> int:
    """Dispatch to a subcommand and return its exit status."""
    args = list(sys.argv[1:] if argv is None else argv)
    current = _installed_version()
    commands = {"version": VersionCommand(current)}

    if not args:
        print(_usage(commands), file=sys.stderr)
        return 1
    name, rest = args[0], args[1:]
    if name in ("-h", "-help", "--help"):
        print(_usage(commands), file=sys.stderr)
        return 0
    if name in ("-v", "-version", "--version"):
        name, rest = "version", []
    command = commands.get(name)
    if command is None:
        print(_usage(commands), file=sys.stderr)
        return 127
    return command.run(rest)