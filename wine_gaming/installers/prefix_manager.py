"""
prefix_manager.py
Wine Gaming Setup - Prefix Manager

Creates the Wine prefix and writes the generated configuration files into it.
An existing prefix is never overwritten: it is moved aside with a timestamp
suffix before the new one is initialized.
"""

import os
import logging
import tempfile
from contextlib import contextmanager
from datetime import datetime
from pathlib import Path
from typing import Callable, Dict, Iterable, Iterator, List, Optional

from wine_gaming.detection.dependency_checker import WineRuntime
from wine_gaming.detection.hardware_probe import HostProfile
from wine_gaming.errors import CommandError, RuntimeInitError
from wine_gaming.profiles.profile_selector import (
    ENV_FILENAME, WINE_ARCH, ConfigProfile, RegistryEntry,
)
from wine_gaming.utils.command_runner import CommandRunner
from wine_gaming.utils.log import success
from wine_gaming.utils.writers import (
    render_env_file, render_key_value, render_registry, write_file,
)

logger = logging.getLogger('PrefixManager')

BACKUP_TIMESTAMP_FORMAT = "%Y%m%d_%H%M%S"


def backup_path_for(prefix: Path, now: datetime) -> Path:
    """First unused ``<prefix>.backup.<timestamp>[.<n>]`` path"""
    base = prefix.with_name(f"{prefix.name}.backup.{now.strftime(BACKUP_TIMESTAMP_FORMAT)}")
    candidate = base
    counter = 1
    while candidate.exists():
        candidate = base.with_name(f"{base.name}.{counter}")
        counter += 1
    return candidate


class PrefixManager:
    """Owns the install path for the duration of a run"""

    def __init__(self, prefix: Path, runtime: WineRuntime,
                 runner: Optional[CommandRunner] = None,
                 clock: Callable[[], datetime] = datetime.now):
        self.prefix = Path(prefix).expanduser()
        self.runtime = runtime
        self.runner = runner or CommandRunner()
        self.clock = clock

    @property
    def env_file(self) -> Path:
        return self.prefix / ENV_FILENAME

    def wine_env(self, **extra: str) -> Dict[str, str]:
        env = {"WINEPREFIX": str(self.prefix), "WINEARCH": WINE_ARCH}
        env.update(extra)
        return env

    def backup_existing(self) -> Optional[Path]:
        """
        Move an existing prefix out of the way

        Returns:
            Path: Where the old prefix now lives, or None if there was none
        """
        if not os.path.lexists(self.prefix):
            return None

        backup = backup_path_for(self.prefix, self.clock())
        logger.warning(f"Prefix already exists. Moving it to {backup}")
        os.rename(self.prefix, backup)
        return backup

    def create(self, host: HostProfile) -> Optional[Path]:
        """
        Back up any previous prefix and initialize a fresh one with wineboot

        Returns:
            Path: Location of the backup, if one was made

        Raises:
            RuntimeInitError: wineboot failed
        """
        logger.info(f"📁 Creating WINEPREFIX at {self.prefix}")
        backup = self.backup_existing()
        self.prefix.mkdir(parents=True)

        extra = {}
        if host.is_wayland:
            logger.info("🖥️  Configuring for Wayland...")
            extra = {"WINE_VK_USE_FSR": "1", "DXVK_FILTER_DEVICE_NAME": ""}

        logger.info("🚀 Initializing Wine...")
        try:
            self.runner.run(self.runtime.tool("wineboot", "-u"), env=self.wine_env(**extra))
        except CommandError as e:
            raise RuntimeInitError(f"wineboot failed to initialize {self.prefix}: {e.output.strip()}") from e

        success(logger, "Prefix created successfully")
        return backup

    def write_environment(self, profile: ConfigProfile) -> List[Path]:
        """Write wine_gaming_env.sh and, when the profile has one, dxvk.conf"""
        written = [write_file(self.env_file,
                              render_env_file(profile.env_vars, profile.banner),
                              executable=True)]

        if profile.translation_layer_config_path is not None:
            logger.info("Writing DXVK configuration for Intel Graphics...", extra={'tag': 'intel'})
            written.append(write_file(
                profile.translation_layer_config_path,
                render_key_value(profile.translation_layer_options,
                                 title="DXVK configuration for Intel Graphics"),
            ))
        return written

    @contextmanager
    def registry_file(self, entries: Iterable[RegistryEntry]) -> Iterator[Path]:
        """Scratch .reg file that is removed once the caller is done with it"""
        fd, name = tempfile.mkstemp(prefix="wine_gaming_", suffix=".reg")
        os.close(fd)
        path = Path(name)
        try:
            write_file(path, render_registry(entries))
            yield path
        finally:
            path.unlink(missing_ok=True)
