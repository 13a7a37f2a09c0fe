"""Command-line entry point of the language server tools."""

from __future__ import annotations

import json
import platform
import sys
from dataclasses import dataclass
from typing import Optional, Sequence, TextIO

PROGRAM = "azlsp"
VERSION = "0.1.0"


class _FlagError(Exception):
    pass


@dataclass(frozen=True)
class _Flag:
    name: str
    usage: str


def _help_for_flags(flags: Sequence[_Flag]) -> str:
    lines = ["Options:", ""]
    for flag in sorted(flags, key=lambda f: f.name):
        lines.append(f"  -{flag.name}")
        lines.append(f"    \t{flag.usage}")
    return "\n".join(lines) + "\n"


def _parse_bool_flags(args: Sequence[str], flags: Sequence[_Flag]) -> tuple[dict[str, bool], list[str]]:
    """Parse ``-name``, ``--name`` and ``-name=bool`` flags up to the first non-flag argument."""
    known = {flag.name for flag in flags}
    values = {name: False for name in known}
    remaining = list(args)
    while remaining:
        arg = remaining[0]
        if len(arg) < 2 or not arg.startswith("-"):
            break
        remaining.pop(0)
        if arg == "--":
            break
        body = arg[2:] if arg.startswith("--") else arg[1:]
        name, sep, raw = body.partition("=")
        if name in ("h", "help"):
            raise _FlagError("flag: help requested")
        if name not in known:
            raise _FlagError(f"flag provided but not defined: -{name}")
        if not sep:
            values[name] = True
        elif raw.lower() in ("1", "t", "true"):
            values[name] = True
        elif raw.lower() in ("0", "f", "false"):
            values[name] = False
        else:
            raise _FlagError(f'invalid boolean value "{raw}" for -{name}: parse error')
    return values, remaining


def _build_info() -> dict[str, str]:
    info = {
        "python": platform.python_version(),
        "os": sys.platform,
        "arch": platform.machine(),
        "compiler": platform.python_implementation(),
    }
    return {key: value for key, value in info.items() if value}


class VersionCommand:
    """Prints the version of the language server, as text or as JSON."""

    _FLAGS = (_Flag("json", "output the version information as a JSON object"),)

    def __init__(
        self,
        version: str = VERSION,
        out: Optional[TextIO] = None,
        err: Optional[TextIO] = None,
    ) -> None:
        self.version = version
        self._out = out
        self._err = err

    def _write(self, stream: Optional[TextIO], fallback: TextIO, text: str) -> None:
        print(text, file=stream if stream is not None else fallback)

    def run(self, args: Sequence[str]) -> int:
        try:
            values, _ = _parse_bool_flags(args, self._FLAGS)
        except _FlagError as exc:
            self._write(self._err, sys.stderr, self.help())
            self._write(self._err, sys.stderr, f"Error parsing command-line flags: {exc}")
            return 1

        info = _build_info()
        if values["json"]:
            self._write(self._out, sys.stdout, json.dumps({"version": self.version, **info}, indent=2))
            return 0

        text = (
            f"{self.version}\n"
            f"platform: {info.get('os', '')}/{info.get('arch', '')}\n"
            f"python: {info.get('python', '')}\n"
            f"compiler: {info.get('compiler', '')}"
        )
        self._write(self._out, sys.stdout, text)
        return 0

    def help(self) -> str:
        text = (
            f"\nUsage: {PROGRAM} version [-json]\n\n"
            + self.synopsis()
            + "\n\n"
            + _help_for_flags(self._FLAGS)
        )
        return text.strip()

    def synopsis(self) -> str:
        return "Displays the version of the language server"


def _usage(commands: dict[str, VersionCommand]) -> str:
    lines = [f"Usage: {PROGRAM} [--version] [--help] <command> [<args>]", "", "Available commands are:"]
    width = max(len(name) for name in commands)
    lines.extend(f"    {name.ljust(width)}    {cmd.synopsis()}" for name, cmd in sorted(commands.items()))
    return "\n".join(lines)


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = list(sys.argv[1:] if argv is None else argv)
    commands = {"version": VersionCommand()}
    if args and args[0] in ("-v", "-version", "--version"):
        args = ["version", *args[1:]]
    if not args or args[0] in ("-h", "-help", "--help"):
        print(_usage(commands), file=sys.stderr)
        return 1
    command = commands.get(args[0])
    if command is None:
        print(_usage(commands), file=sys.stderr)
        return 127
    return command.run(args[1:])


if __name__ == "__main__":
    sys.exit(main())