"""
Tests for the installer orchestrator: registry import, winetricks and layer selection.
"""

import logging
from pathlib import Path
from unittest.mock import Mock

import pytest

from wine_gaming.config import ConfigManager
from wine_gaming.detection.dependency_checker import FLATPAK, NATIVE, PackageHelper, WineRuntime
from wine_gaming.detection.hardware_probe import GpuVendor
from wine_gaming.errors import InstallError
from wine_gaming.installers.orchestrator import InstallReport, InstallerOrchestrator
from wine_gaming.installers.prefix_manager import PrefixManager
from wine_gaming.installers.translation_layers import DLL_OVERRIDES_KEY
from wine_gaming.profiles.profile_selector import RegistryEntry, select_profile


@pytest.fixture
def config(tmp_path):
    return ConfigManager(config_path=str(tmp_path / "absent.json"))


@pytest.fixture
def layer_installer():
    installer = Mock()
    installer.install.return_value = []
    return installer


@pytest.fixture
def build(tmp_path, runner, config, layer_installer):
    def _build(runtime=WineRuntime(NATIVE), helper=PackageHelper(NATIVE)):
        manager = PrefixManager(tmp_path / "prefix", runtime, runner)
        return InstallerOrchestrator(manager, runtime, helper, config,
                                     runner=runner, layer_installer=layer_installer)
    return _build


def installed_keys(layer_installer):
    return [call.args[0].key for call in layer_installer.install.call_args_list]


class TestRegistry:

    def test_imports_profile_registry(self, build, runner, make_host, tmp_path):
        imported = []
        runner.on_run("regedit", lambda call: imported.append(Path(call.argv[-1]).read_text()))
        host = make_host(gpu_vendor=GpuVendor.INTEL)

        build().configure_wine(host, select_profile(host, tmp_path / "prefix"))

        assert runner.calls[-1].argv[:2] == ["wine", "regedit"]
        assert runner.calls[-1].env["WINEPREFIX"] == str(tmp_path / "prefix")
        assert "[HKEY_CURRENT_USER\\Software\\Wine\\Direct3D]" in imported[0]

    def test_registry_failure_is_fatal(self, build, runner, make_host, tmp_path):
        runner.fail("regedit")
        host = make_host()

        with pytest.raises(InstallError, match="Registry import failed"):
            build().configure_wine(host, select_profile(host, tmp_path / "prefix"))

    def test_nothing_to_import(self, build, runner):
        build().import_registry([])
        assert runner.calls == []


class TestLibraries:

    def test_winetricks_gets_profile_libraries(self, build, runner, make_host, tmp_path):
        host = make_host(gpu_vendor=GpuVendor.INTEL)
        profile = select_profile(host, tmp_path / "prefix")

        assert build().install_libraries(host, profile) is True

        call = runner.calls[-1]
        assert call.argv == ["winetricks", "-q"] + list(profile.library_list)
        assert call.capture is False
        assert "physx" in call.argv

    def test_winetricks_failure_is_a_warning(self, build, runner, make_host, tmp_path, caplog):
        runner.fail("winetricks", returncode=3)
        host = make_host()
        caplog.set_level(logging.WARNING)

        assert build().install_libraries(host, select_profile(host, tmp_path / "prefix")) is False
        assert "Winetricks failed (3)" in caplog.text

    @pytest.mark.parametrize("helper", [PackageHelper(None), PackageHelper(FLATPAK)])
    def test_without_native_winetricks(self, build, runner, make_host, tmp_path, helper):
        host = make_host()

        assert build(helper=helper).install_libraries(host, select_profile(host, tmp_path)) is False
        assert runner.calls == []


class TestTranslationLayers:

    def test_installs_both_layers(self, build, layer_installer, make_host, tmp_path):
        host = make_host()
        orchestrator = build()

        report = orchestrator.run(host, select_profile(host, tmp_path / "prefix"))

        assert installed_keys(layer_installer) == ["dxvk", "vkd3d"]
        assert report.installed_layers == ["dxvk", "vkd3d"]
        assert report.libraries_installed is True
        assert layer_installer.install.call_args.kwargs["use_setup_script"] is True

    def test_layers_use_configured_versions(self, build):
        dxvk, vkd3d = build().layers
        assert dxvk.url == "https://github.com/doitsujin/dxvk/releases/download/v2.3.1/dxvk-2.3.1.tar.gz"
        assert vkd3d.version == "2.12"

    def test_skips_vkd3d_without_vulkan(self, build, layer_installer, make_host, tmp_path, caplog):
        host = make_host(graphics_api_available=False)
        caplog.set_level(logging.WARNING)

        report = build().run(host, select_profile(host, tmp_path / "prefix"))

        assert installed_keys(layer_installer) == ["dxvk"]
        assert "vkd3d" in report.skipped_layers
        assert "Vulkan not detected" in caplog.text

    def test_skips_vkd3d_on_intel_mismatch(self, build, layer_installer, make_host, tmp_path):
        host = make_host(gpu_vendor=GpuVendor.INTEL, graphics_api_vendor_match=False)

        report = build().run(host, select_profile(host, tmp_path / "prefix"))

        assert installed_keys(layer_installer) == ["dxvk"]
        assert "Intel" in report.skipped_layers["vkd3d"]

    def test_flatpak_imports_dll_overrides(self, build, runner, layer_installer, make_host):
        imported = []
        runner.on_run("regedit", lambda call: imported.append(Path(call.argv[-1]).read_text()))
        layer_installer.install.return_value = [RegistryEntry(DLL_OVERRIDES_KEY, "dxgi", "native")]
        runtime = WineRuntime(FLATPAK)

        build(runtime=runtime).install_translation_layers(make_host(graphics_api_available=False),
                                                           InstallReport())

        assert layer_installer.install.call_args.kwargs["use_setup_script"] is False
        assert runner.calls[-1].argv[:4] == runtime.wine("regedit")
        assert '"dxgi"="native"' in imported[0]

    def test_layer_failure_propagates(self, build, layer_installer, make_host):
        layer_installer.install.side_effect = InstallError("Failed to download DXVK 2.3.1")

        with pytest.raises(InstallError):
            build().install_translation_layers(make_host(), InstallReport())
