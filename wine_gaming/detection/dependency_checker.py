"""
dependency_checker.py
Wine Gaming Setup - Dependency Checker

Verifies that the external tools the setup drives are installed. Wine and
the package helper may be satisfied either by a native install or by their
Flatpak packages; the auxiliary tools are mandatory in every case.
"""

import shlex
import logging
from dataclasses import dataclass
from typing import List, Optional, Tuple

from wine_gaming.errors import MissingDependencyError
from wine_gaming.utils.command_runner import CommandRunner
from wine_gaming.utils.log import success

logger = logging.getLogger('DependencyChecker')

WINE_FLATPAK_ID = "org.winehq.Wine"
PROTONTRICKS_FLATPAK_ID = "com.github.Matoking.protontricks"

NATIVE = "native"
FLATPAK = "flatpak"

# wget is what winetricks downloads redistributables with
AUXILIARY_TOOLS = ["wget", "tar", "lspci"]
RUNTIME_COMPANION = "wineboot"

AUXILIARY_HINTS = [
    "For Ubuntu/Debian: sudo apt install wget tar pciutils",
    "For Arch: sudo pacman -S wget tar pciutils",
    "For Fedora: sudo dnf install wget tar pciutils",
]

WINE_HINTS = [
    "For Ubuntu/Debian: sudo apt install wine",
    "For Arch: sudo pacman -S wine",
    "For Fedora: sudo dnf install wine",
    f"Or use Flatpak: flatpak install flathub {WINE_FLATPAK_ID}",
]

WINETRICKS_HINTS = [
    "sudo apt install winetricks (Ubuntu/Debian)",
    "sudo pacman -S winetricks (Arch)",
    f"flatpak install flathub {PROTONTRICKS_FLATPAK_ID}",
]


@dataclass(frozen=True)
class WineRuntime:
    """How to invoke Wine and its companion tools for the selected install form"""
    form: str = NATIVE

    @property
    def base_argv(self) -> List[str]:
        if self.form == FLATPAK:
            return ["flatpak", "run", WINE_FLATPAK_ID]
        return ["wine"]

    def wine(self, *args: str) -> List[str]:
        return self.base_argv + list(args)

    def tool(self, name: str, *args: str) -> List[str]:
        """Command line for a Wine companion tool such as wineboot or wineserver"""
        if self.form == FLATPAK:
            return self.base_argv + [name] + list(args)
        return [name] + list(args)

    def shell_command(self, name: str = "wine") -> str:
        """The tool invocation as it should appear in a generated shell script"""
        argv = self.base_argv if name == "wine" else self.tool(name)
        return " ".join(shlex.quote(arg) for arg in argv)


@dataclass(frozen=True)
class PackageHelper:
    """Which winetricks flavour is available, if any"""
    form: Optional[str] = None

    @property
    def available(self) -> bool:
        return self.form is not None

    @property
    def can_install_libraries(self) -> bool:
        # protontricks needs a Steam app id and cannot target an arbitrary prefix
        return self.form == NATIVE


@dataclass(frozen=True)
class DependencyReport:
    """Outcome of the dependency check"""
    runtime: WineRuntime
    package_helper: PackageHelper
    wine_version: str = ""


class DependencyChecker:
    """Checks for Wine, winetricks and the auxiliary tools"""

    def __init__(self, runner: Optional[CommandRunner] = None):
        self.runner = runner or CommandRunner()
        self._flatpak_apps: Optional[str] = None

    def check(self) -> DependencyReport:
        """
        Verify all dependencies

        Returns:
            DependencyReport: The resolved Wine runtime and package helper

        Raises:
            MissingDependencyError: Wine or a mandatory auxiliary tool is missing
        """
        logger.info("🔍 Checking dependencies...")

        runtime, wine_version = self._check_wine()
        package_helper = self._check_package_helper()

        for tool in AUXILIARY_TOOLS:
            if not self.runner.which(tool):
                raise MissingDependencyError(tool, AUXILIARY_HINTS)

        if runtime is None:
            raise MissingDependencyError("wine", WINE_HINTS)

        if runtime.form == NATIVE and not self.runner.which(RUNTIME_COMPANION):
            raise MissingDependencyError(RUNTIME_COMPANION, WINE_HINTS)

        if not package_helper.available:
            logger.warning("Winetricks not found. Some features may not work.")

        success(logger, "Dependencies verified")
        return DependencyReport(runtime=runtime, package_helper=package_helper,
                                wine_version=wine_version)

    def _flatpak_list(self) -> str:
        if self._flatpak_apps is None:
            self._flatpak_apps = ""
            if self.runner.which("flatpak"):
                self._flatpak_apps = self.runner.probe(["flatpak", "list"]) or ""
        return self._flatpak_apps

    def _check_wine(self) -> Tuple[Optional[WineRuntime], str]:
        """Native Wine is preferred over the Flatpak package"""
        if self.runner.which("wine"):
            version = (self.runner.probe(["wine", "--version"]) or "").strip()
            success(logger, f"Native Wine found: {version}")
            return WineRuntime(NATIVE), version

        if WINE_FLATPAK_ID in self._flatpak_list():
            success(logger, "Flatpak Wine found")
            return WineRuntime(FLATPAK), ""

        return None, ""

    def _check_package_helper(self) -> PackageHelper:
        if self.runner.which("winetricks"):
            success(logger, "Native winetricks found")
            return PackageHelper(NATIVE)

        if PROTONTRICKS_FLATPAK_ID in self._flatpak_list():
            success(logger, "Flatpak protontricks found")
            return PackageHelper(FLATPAK)

        return PackageHelper(None)
