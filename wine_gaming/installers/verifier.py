"""
verifier.py
Wine Gaming Setup - Post-install Verification

Smoke test of a finished prefix: Wine must report a version and DXVK's
dxgi.dll should be in system32. Vendor checks are repeated as informational
diagnostics only.
"""

import re
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional

from wine_gaming.detection.dependency_checker import WineRuntime
from wine_gaming.detection.hardware_probe import GpuVendor, HostProfile, report_vulkan_match, vulkan_matches_vendor
from wine_gaming.errors import CommandError
from wine_gaming.profiles.profile_selector import ConfigProfile
from wine_gaming.utils.command_runner import CommandRunner
from wine_gaming.utils.log import success

logger = logging.getLogger('Verifier')

DXVK_MARKER_DLL = Path("drive_c") / "windows" / "system32" / "dxgi.dll"


@dataclass
class VerificationResult:
    wine_version: str = ""
    dxvk_installed: bool = False
    diagnostics: List[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return bool(self.wine_version)


class Verifier:
    """Checks that the runtime and translation layers are in place"""

    def __init__(self, prefix: Path, runtime: WineRuntime, runner: Optional[CommandRunner] = None):
        self.prefix = Path(prefix)
        self.runtime = runtime
        self.runner = runner or CommandRunner()

    def verify(self, host: HostProfile, profile: ConfigProfile) -> VerificationResult:
        logger.info("🧪 Testing installation...")
        result = VerificationResult()

        try:
            output = self.runner.run(self.runtime.wine("--version"),
                                     env={"WINEPREFIX": str(self.prefix)})
            result.wine_version = output.strip()
        except CommandError as e:
            logger.error(f"Problem with Wine: {e}")

        if result.wine_version:
            success(logger, f"Wine working correctly: {result.wine_version}")

        result.dxvk_installed = (self.prefix / DXVK_MARKER_DLL).is_file()
        if result.dxvk_installed:
            success(logger, "DXVK installed correctly")
        else:
            logger.warning("DXVK may not be installed correctly")

        self._vendor_diagnostics(host, profile, result)
        return result

    def _vendor_diagnostics(self, host: HostProfile, profile: ConfigProfile,
                            result: VerificationResult) -> None:
        if host.gpu_vendor is not GpuVendor.UNKNOWN and self.runner.which("vulkaninfo"):
            output = self.runner.probe(["vulkaninfo"]) or ""
            matched = vulkan_matches_vendor(output, host.gpu_vendor)
            report_vulkan_match(host.gpu_vendor, matched)
            if matched:
                result.diagnostics.append("vulkan")

        if host.gpu_vendor is not GpuVendor.INTEL:
            return

        logger.info("Running Intel specific checks...", extra={'tag': 'intel'})
        config_path = profile.translation_layer_config_path
        if config_path is not None and config_path.is_file():
            logger.info("Intel DXVK configuration found", extra={'tag': 'intel'})
            result.diagnostics.append("dxvk.conf")

        if self.runner.which("vainfo"):
            output = self.runner.probe(["vainfo"]) or ""
            if re.search(r"intel", output, re.IGNORECASE):
                logger.info("Intel video acceleration working", extra={'tag': 'intel'})
                result.diagnostics.append("vaapi")
