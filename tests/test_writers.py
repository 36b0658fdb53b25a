"""
Tests for the registry, environment and key/value serializers.
"""

import os
from collections import OrderedDict

import pytest

from wine_gaming.profiles.profile_selector import RegistryEntry
from wine_gaming.utils.writers import (
    REGISTRY_HEADER, SHEBANG, render_env_file, render_key_value,
    render_registry, shell_quote, write_file,
)

KEY = r"HKEY_CURRENT_USER\Software\Wine\Direct3D"


class TestRenderRegistry:

    def test_groups_consecutive_keys(self):
        entries = [
            RegistryEntry(KEY, "VideoPciVendorID", 0x8086),
            RegistryEntry(KEY, "UseGLSL", "enabled"),
            RegistryEntry(r"HKEY_CURRENT_USER\Software\Wine\DirectInput", "MouseWarpOverride", "force"),
        ]

        text = render_registry(entries)

        assert text == (
            f"{REGISTRY_HEADER}\n"
            "\n"
            f"[{KEY}]\n"
            '"VideoPciVendorID"=dword:00008086\n'
            '"UseGLSL"="enabled"\n'
            "\n"
            "[HKEY_CURRENT_USER\\Software\\Wine\\DirectInput]\n"
            '"MouseWarpOverride"="force"\n'
        )

    def test_escapes_strings(self):
        text = render_registry([RegistryEntry(KEY, "Path", 'C:\\Games\\"x"')])
        assert '"Path"="C:\\\\Games\\\\\\"x\\""' in text

    @pytest.mark.parametrize("value", [-1, 0x100000000, True])
    def test_rejects_invalid_values(self, value):
        with pytest.raises((TypeError, ValueError)):
            render_registry([RegistryEntry(KEY, "Bad", value)])


class TestRenderEnvFile:

    def test_exports_in_order(self):
        text = render_env_file(OrderedDict([("WINEPREFIX", "/p"), ("DXVK_HUD", "fps,memory")]))
        lines = text.splitlines()

        assert lines[0] == SHEBANG
        assert lines[-2:] == ['export WINEPREFIX="/p"', 'export DXVK_HUD="fps,memory"']

    def test_empty_value(self):
        assert 'export INTEL_DEBUG=""' in render_env_file({"INTEL_DEBUG": ""})

    def test_banner_is_echoed(self):
        text = render_env_file({"A": "1"}, banner=["🎮 Generic environment loaded!"])
        assert text.endswith('echo "🎮 Generic environment loaded!"\n')

    @pytest.mark.parametrize("name", ["1ABC", "BAD-NAME", "WITH SPACE"])
    def test_rejects_invalid_names(self, name):
        with pytest.raises(ValueError):
            render_env_file({name: "x"})


@pytest.mark.parametrize("value, quoted", [
    ("plain", '"plain"'),
    ("$HOME", '"\\$HOME"'),
    ("a`b`", '"a\\`b\\`"'),
    ('say "hi"', '"say \\"hi\\""'),
    ("back\\slash", '"back\\\\slash"'),
])
def test_shell_quote(value, quoted):
    assert shell_quote(value) == quoted


def test_render_key_value():
    text = render_key_value(OrderedDict([("dxgi.maxFrameLatency", "1"), ("dxvk.enableAsync", "True")]),
                            title="DXVK configuration")
    assert text == "# DXVK configuration\ndxgi.maxFrameLatency = 1\ndxvk.enableAsync = True\n"


def test_write_file_executable(tmp_path):
    path = write_file(tmp_path / "nested" / "run.sh", "#!/bin/bash\n", executable=True)

    assert path.read_text() == "#!/bin/bash\n"
    assert os.access(path, os.X_OK)


def test_write_file_plain(tmp_path):
    path = write_file(tmp_path / "dxvk.conf", "a = b\n")
    assert not os.access(path, os.X_OK)
