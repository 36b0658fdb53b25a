"""
writers.py
Wine Gaming Setup - Configuration File Writers

One serializer per generated file format:

- Windows registry import files (``regedit`` format, version 5.00)
- shell-sourceable environment files (``export KEY="VALUE"``)
- ``key = value`` option files such as dxvk.conf

All quoting and escaping for a format lives in its serializer.
"""

import os
import stat
from itertools import groupby
from pathlib import Path
from typing import Iterable, Mapping, Sequence, Union

from wine_gaming.profiles.profile_selector import RegistryEntry

REGISTRY_HEADER = "Windows Registry Editor Version 5.00"
SHEBANG = "#!/bin/bash"


def _registry_string(value: str) -> str:
    return '"' + value.replace("\\", "\\\\").replace('"', '\\"') + '"'


def _registry_value(value: Union[int, str]) -> str:
    if isinstance(value, bool):
        raise TypeError("Registry values must be int or str, not bool")
    if isinstance(value, int):
        if not 0 <= value <= 0xFFFFFFFF:
            raise ValueError(f"DWORD out of range: {value}")
        return f"dword:{value:08x}"
    return _registry_string(value)


def render_registry(entries: Iterable[RegistryEntry]) -> str:
    """
    Serialize registry entries into a regedit import file

    Consecutive entries that share a key are grouped under one section,
    keeping the order in which they were given.
    """
    lines = [REGISTRY_HEADER]
    for key, group in groupby(entries, key=lambda entry: entry.key):
        lines.append("")
        lines.append(f"[{key}]")
        for entry in group:
            lines.append(f"{_registry_string(entry.name)}={_registry_value(entry.value)}")
    return "\n".join(lines) + "\n"


def shell_quote(value: str) -> str:
    """Double-quote a value for bash, escaping everything that would expand"""
    escaped = value
    for char in ("\\", '"', "$", "`"):
        escaped = escaped.replace(char, "\\" + char)
    return f'"{escaped}"'


def render_env_file(env_vars: Mapping[str, str], banner: Sequence[str] = (),
                    title: str = "Wine Gaming environment variables") -> str:
    lines = [SHEBANG, f"# {title}", ""]
    for key, value in env_vars.items():
        if not key.replace("_", "a").isalnum() or key[0].isdigit():
            raise ValueError(f"Invalid environment variable name: {key!r}")
        lines.append(f"export {key}={shell_quote(value)}")
    if banner:
        lines.append("")
        lines.extend(f"echo {shell_quote(line)}" for line in banner)
    return "\n".join(lines) + "\n"


def render_key_value(options: Mapping[str, str], title: str = "") -> str:
    lines = [f"# {title}"] if title else []
    lines.extend(f"{key} = {value}" for key, value in options.items())
    return "\n".join(lines) + "\n"


def write_file(path: Union[str, Path], content: str, executable: bool = False) -> Path:
    """Write text content, optionally adding the executable bits"""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content, encoding="utf-8")
    if executable:
        mode = os.stat(path).st_mode
        os.chmod(path, mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
    return path
