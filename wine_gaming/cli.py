#!/usr/bin/env python3
"""
cli.py
Wine Gaming Setup - Command Line Interface

Usage: wine-gaming-setup [PREFIX]

Detects the host hardware, creates a tuned Wine prefix at PREFIX
(default ~/Games/wine-gaming), installs DXVK / VKD3D-Proton and writes the
helper scripts. Exits 0 on success and 1 on any fatal error.
"""

import sys
import logging
import argparse
from pathlib import Path
from typing import List, Optional

from wine_gaming import APP_NAME, VERSION
from wine_gaming.config import DEFAULT_PREFIX, ConfigManager
from wine_gaming.detection.dependency_checker import DependencyChecker
from wine_gaming.detection.hardware_probe import GpuVendor, HardwareProbe, HostProfile
from wine_gaming.errors import WineGamingError
from wine_gaming.installers.orchestrator import InstallerOrchestrator
from wine_gaming.installers.prefix_manager import PrefixManager
from wine_gaming.installers.verifier import Verifier
from wine_gaming.profiles.profile_selector import ENV_FILENAME, WINE_ARCH, select_profile
from wine_gaming.utils.command_runner import CommandRunner
from wine_gaming.utils.log import configure_logging, success
from wine_gaming.utils.script_generator import ScriptGenerator

logger = logging.getLogger('WineGamingSetup')


class CommandLineInterface:
    """Runs the setup phases in order and maps failures to exit codes"""

    def __init__(self, config: Optional[ConfigManager] = None,
                 runner: Optional[CommandRunner] = None,
                 probe: Optional[HardwareProbe] = None,
                 checker: Optional[DependencyChecker] = None):
        self.config = config or ConfigManager()
        self.runner = runner or CommandRunner()
        self.probe = probe or HardwareProbe(self.runner)
        self.checker = checker or DependencyChecker(self.runner)

    def _create_argument_parser(self) -> argparse.ArgumentParser:
        parser = argparse.ArgumentParser(
            prog="wine-gaming-setup",
            description=f"{APP_NAME} v{VERSION} - tuned Wine prefix for gaming",
        )
        parser.add_argument("prefix", nargs="?", default=DEFAULT_PREFIX,
                            help=f"Wine prefix to create (default: {DEFAULT_PREFIX})")
        return parser

    def run(self, argv: Optional[List[str]] = None) -> int:
        args = self._create_argument_parser().parse_args(argv)
        prefix = Path(args.prefix).expanduser().absolute()

        logger.info(f"🍷 {APP_NAME} v{VERSION}")
        logger.info(f"📁 Prefix: {prefix}")
        logger.info(f"🏗️  Architecture: {WINE_ARCH}")

        try:
            self.setup(prefix)
        except WineGamingError as e:
            logger.error(str(e))
            for hint in e.hints:
                logger.info(hint)
            return 1
        except KeyboardInterrupt:
            logger.error("Interrupted")
            return 130
        return 0

    def setup(self, prefix: Path) -> None:
        """
        Run every phase against the prefix

        Raises:
            WineGamingError: A fatal error stopped the setup
        """
        host = self.probe.detect()
        deps = self.checker.check()
        profile = select_profile(host, prefix)

        prefix_manager = PrefixManager(prefix, deps.runtime, self.runner)
        prefix_manager.create(host)

        logger.info("🚀 Applying performance settings...")
        prefix_manager.write_environment(profile)
        success(logger, f"Settings applied for {host.gpu_vendor.value}")

        orchestrator = InstallerOrchestrator(prefix_manager, deps.runtime, deps.package_helper,
                                             self.config, runner=self.runner)
        orchestrator.run(host, profile)

        ScriptGenerator(prefix, deps.runtime).generate()

        result = Verifier(prefix, deps.runtime, self.runner).verify(host, profile)
        if not result.ok:
            raise WineGamingError("Wine did not report a version after installation")
        success(logger, "Installation complete!")

        self._show_instructions(host, prefix)
        success(logger, "🎉 Setup complete!")

    def _show_instructions(self, host: HostProfile, prefix: Path) -> None:
        logger.info("📋 Usage instructions:")
        print()
        print("=== CURRENT CONFIGURATION ===")
        print(f"GPU: {host.gpu_vendor.value} - {host.gpu_model}")
        print(f"CPU Cores: {host.cpu_cores}")
        print(f"Available RAM: {host.available_ram_mb}MB")
        print(f"Kernel: {host.kernel_version}")
        print(f"Protocol: {host.protocol}")
        print()
        print("=== MAIN COMMANDS ===")
        print("1. Load the environment:")
        print(f"   source '{prefix / ENV_FILENAME}'")
        print()
        print("2. Run a game:")
        print(f"   '{prefix / 'wine_run.sh'}' /path/to/game.exe")
        print("   # or directly after loading the environment:")
        print("   wine /path/to/game.exe")
        print()
        print("3. Configure Wine:")
        print(f"   '{prefix / 'configure.sh'}'")
        print()
        print("4. Install more programs:")
        print(f"   '{prefix / 'install_more.sh'}'")
        print()
        print("5. Clean up:")
        print(f"   '{prefix / 'cleanup.sh'}'")
        print()

        if host.gpu_vendor is GpuVendor.INTEL:
            logger.info("=== INTEL SPECIFIC TIPS ===", extra={'tag': 'intel'})
            print("• Watch RAM usage with DXVK_HUD=memory")
            print("• For very old games, disable DXVK:")
            print("  WINEDLLOVERRIDES='d3d11=;dxgi=' wine game.exe")
            print("• If Vulkan gives you trouble, force OpenGL:")
            print("  MESA_LOADER_DRIVER_OVERRIDE=i965 wine game.exe")
            print()

        if host.is_wayland:
            logger.info("🖥️  === WAYLAND TIPS ===")
            print("• Some games may perform better on X11")
            print("• Use 'XDG_SESSION_TYPE=x11' to force X11 in a session")
            print()


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point"""
    config = ConfigManager()
    configure_logging(config.log_file, config.verbose)
    return CommandLineInterface(config=config).run(argv)


if __name__ == '__main__':
    sys.exit(main())
