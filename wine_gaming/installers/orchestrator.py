"""
orchestrator.py
Wine Gaming Setup - Installer Orchestrator

Applies a ConfigProfile to a freshly created prefix in three phases:

1. import the generated registry overrides with ``wine regedit``
2. install the redistributable libraries with winetricks
3. install DXVK and, when the host supports it, VKD3D-Proton

Registry and translation layer failures are fatal (InstallError). Library
installation is best effort because winetricks itself is optional.
"""

import logging
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional

from wine_gaming.config import ConfigManager
from wine_gaming.detection.dependency_checker import FLATPAK, PackageHelper, WineRuntime
from wine_gaming.detection.hardware_probe import GpuVendor, HostProfile
from wine_gaming.errors import CommandError, InstallError
from wine_gaming.installers.prefix_manager import PrefixManager
from wine_gaming.installers.translation_layers import (
    TranslationLayer, TranslationLayerInstaller, dxvk_layer, vkd3d_layer,
)
from wine_gaming.profiles.profile_selector import ConfigProfile, RegistryEntry, should_install_vkd3d
from wine_gaming.utils.command_runner import CommandRunner
from wine_gaming.utils.log import success

logger = logging.getLogger('InstallerOrchestrator')


@dataclass
class InstallReport:
    """What the orchestrator did"""
    libraries_installed: bool = False
    installed_layers: List[str] = field(default_factory=list)
    skipped_layers: Dict[str, str] = field(default_factory=dict)


class InstallerOrchestrator:
    """Drives Wine, winetricks and the translation layer installers"""

    def __init__(self, prefix_manager: PrefixManager, runtime: WineRuntime,
                 package_helper: PackageHelper, config: ConfigManager,
                 runner: Optional[CommandRunner] = None,
                 layer_installer: Optional[TranslationLayerInstaller] = None):
        self.prefix_manager = prefix_manager
        self.runtime = runtime
        self.package_helper = package_helper
        self.config = config
        self.runner = runner or CommandRunner()
        self.layer_installer = layer_installer or TranslationLayerInstaller(
            config.cache_dir, runner=self.runner, timeout=config.download_timeout,
        )

    @property
    def layers(self) -> List[TranslationLayer]:
        return [
            dxvk_layer(self.config.version("dxvk"), self.config.url("dxvk")),
            vkd3d_layer(self.config.version("vkd3d"), self.config.url("vkd3d")),
        ]

    def import_registry(self, entries: Iterable[RegistryEntry]) -> None:
        """
        Import registry entries into the prefix

        Raises:
            InstallError: regedit failed
        """
        entries = list(entries)
        if not entries:
            return

        with self.prefix_manager.registry_file(entries) as reg_file:
            try:
                self.runner.run(self.runtime.wine("regedit", str(reg_file)),
                                env=self.prefix_manager.wine_env())
            except CommandError as e:
                raise InstallError(f"Registry import failed: {e.output.strip()}") from e

    def configure_wine(self, host: HostProfile, profile: ConfigProfile) -> None:
        logger.info("⚙️  Configuring Wine...")
        if host.is_wayland:
            logger.info("🖥️  Applying Wayland settings...")
        if host.gpu_vendor is GpuVendor.INTEL:
            logger.info("Applying Intel Graphics specific settings...", extra={'tag': 'intel'})
        self.import_registry(profile.registry_entries)
        success(logger, "Wine configured")

    def install_libraries(self, host: HostProfile, profile: ConfigProfile) -> bool:
        """
        Install the profile's libraries with winetricks

        Returns:
            bool: True if winetricks ran and succeeded
        """
        if not self.package_helper.can_install_libraries:
            logger.warning("Winetricks not available, skipping library installation")
            return False

        logger.info("📦 Installing essential libraries with Winetricks...")
        if host.gpu_vendor is GpuVendor.INTEL:
            logger.info("Adding Intel specific libraries...", extra={'tag': 'intel'})

        try:
            self.runner.run(["winetricks", "-q"] + list(profile.library_list),
                            env=self.prefix_manager.wine_env(), capture=False)
        except CommandError as e:
            logger.warning(f"Winetricks failed ({e.returncode}); some libraries may be missing")
            return False

        success(logger, "Libraries installed")
        return True

    def install_translation_layers(self, host: HostProfile, report: InstallReport) -> None:
        use_setup_script = self.runtime.form != FLATPAK
        dxvk, vkd3d = self.layers

        self._install_layer(dxvk, use_setup_script, report)

        if host.gpu_vendor is GpuVendor.INTEL:
            logger.info("Checking VKD3D compatibility with Intel...", extra={'tag': 'intel'})
        install, reason = should_install_vkd3d(host)
        if not install:
            logger.warning(reason)
            report.skipped_layers[vkd3d.key] = reason
            return

        self._install_layer(vkd3d, use_setup_script, report)

    def _install_layer(self, layer: TranslationLayer, use_setup_script: bool,
                       report: InstallReport) -> None:
        overrides = self.layer_installer.install(
            layer, self.prefix_manager.prefix, self.prefix_manager.wine_env(),
            use_setup_script=use_setup_script,
        )
        self.import_registry(overrides)
        report.installed_layers.append(layer.key)

    def run(self, host: HostProfile, profile: ConfigProfile) -> InstallReport:
        """
        Run all install phases against the prefix

        Raises:
            InstallError: Registry import or a translation layer failed
        """
        report = InstallReport()
        self.configure_wine(host, profile)
        report.libraries_installed = self.install_libraries(host, profile)
        self.install_translation_layers(host, report)
        return report
