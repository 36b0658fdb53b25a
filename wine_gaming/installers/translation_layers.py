"""
translation_layers.py
Wine Gaming Setup - DXVK / VKD3D-Proton Installer

Downloads the version-pinned release archive of a Direct3D translation layer
(cached between runs), extracts it and installs it into the prefix with the
setup script bundled in the archive. Archives that ship no setup script have
their DLLs copied into the prefix directly, with native DLL overrides
returned for the caller to import.
"""

import os
import shutil
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List, Optional
from urllib.parse import urlparse

import requests
from tqdm import tqdm

from wine_gaming import VERSION
from wine_gaming.errors import CommandError, InstallError
from wine_gaming.profiles.profile_selector import WINE_KEY, RegistryEntry
from wine_gaming.utils.command_runner import CommandRunner
from wine_gaming.utils.log import success

logger = logging.getLogger('TranslationLayers')

DLL_OVERRIDES_KEY = f"{WINE_KEY}\\DllOverrides"

# Archive subdirectory -> prefix system directory
DLL_TARGETS = {
    "x64": "system32",
    "x32": "syswow64",
    "x86": "syswow64",
}

TAR_FLAGS = {
    ".tar.gz": "-xzf",
    ".tar.xz": "-xJf",
}


@dataclass(frozen=True)
class TranslationLayer:
    """A translation layer release and how to install it"""
    key: str
    display_name: str
    version: str
    url: str
    setup_script: str

    @property
    def archive_name(self) -> str:
        return os.path.basename(urlparse(self.url).path)

    @property
    def extract_dir_name(self) -> str:
        name = self.archive_name
        for suffix in TAR_FLAGS:
            if name.endswith(suffix):
                return name[:-len(suffix)]
        return name


def dxvk_layer(version: str, url: str) -> TranslationLayer:
    return TranslationLayer("dxvk", "DXVK", version, url, "setup_dxvk.sh")


def vkd3d_layer(version: str, url: str) -> TranslationLayer:
    return TranslationLayer("vkd3d", "VKD3D-Proton", version, url, "setup_vkd3d_proton.sh")


class TranslationLayerInstaller:
    """Class to handle download, extraction and installation of translation layers"""

    def __init__(self, cache_dir: str, runner: Optional[CommandRunner] = None,
                 session: Optional[requests.Session] = None, timeout: float = 60):
        """
        Initialize the installer

        Args:
            cache_dir: Directory for downloaded archives and extracted trees
            runner: Command runner for tar and the setup scripts
            session: HTTP session used for downloads
            timeout: Connect/read timeout for downloads in seconds
        """
        self.cache_dir = Path(cache_dir)
        self.download_dir = self.cache_dir / "downloads"
        self.extract_dir = self.cache_dir / "extracted"
        self.runner = runner or CommandRunner()
        self.timeout = timeout

        self.session = session or requests.Session()
        self.session.headers.update({
            'User-Agent': f'wine-gaming-setup/{VERSION}'
        })

    def download(self, layer: TranslationLayer) -> Path:
        """
        Download the release archive unless it is already cached

        Returns:
            Path: Local archive path

        Raises:
            InstallError: The download failed
        """
        self.download_dir.mkdir(parents=True, exist_ok=True)
        output_path = self.download_dir / layer.archive_name

        if output_path.exists():
            logger.info(f"{layer.display_name} {layer.version} already downloaded")
            return output_path

        logger.info(f"🌐 Downloading {layer.display_name} {layer.version} from {layer.url}")
        partial_path = output_path.with_name(output_path.name + ".part")

        try:
            with self.session.get(layer.url, stream=True, timeout=self.timeout) as response:
                response.raise_for_status()
                total_size = int(response.headers.get('content-length', 0))

                with open(partial_path, 'wb') as f:
                    with tqdm(total=total_size, unit='B', unit_scale=True, desc=layer.archive_name) as pbar:
                        for chunk in response.iter_content(chunk_size=8192):
                            if chunk:
                                f.write(chunk)
                                pbar.update(len(chunk))
        except (requests.RequestException, OSError) as e:
            partial_path.unlink(missing_ok=True)
            raise InstallError(f"Failed to download {layer.display_name} {layer.version}: {e}") from e

        os.replace(partial_path, output_path)
        logger.info(f"Downloaded {layer.display_name} to {output_path}")
        return output_path

    def extract(self, layer: TranslationLayer, archive: Path) -> Path:
        """Extract the archive into the cache, replacing any previous extraction"""
        flag = next((flag for suffix, flag in TAR_FLAGS.items() if archive.name.endswith(suffix)), "-xf")
        self.extract_dir.mkdir(parents=True, exist_ok=True)
        target = self.extract_dir / layer.extract_dir_name
        if target.exists():
            shutil.rmtree(target)

        try:
            self.runner.run(["tar", flag, str(archive), "-C", str(self.extract_dir)])
        except CommandError as e:
            raise InstallError(f"Failed to extract {archive.name}: {e.output.strip()}") from e

        if not target.is_dir():
            raise InstallError(f"{archive.name} did not contain {layer.extract_dir_name}/")
        return target

    def install(self, layer: TranslationLayer, prefix: Path,
                wine_env: Dict[str, str], use_setup_script: bool = True) -> List[RegistryEntry]:
        """
        Install a translation layer into a prefix

        Args:
            layer: Layer to install
            prefix: Wine prefix
            wine_env: Environment (WINEPREFIX, WINEARCH) for the setup script
            use_setup_script: Run the bundled setup script when the archive has one;
                the scripts call wine from PATH, so Flatpak Wine cannot use them

        Returns:
            List[RegistryEntry]: DLL overrides still to be imported; empty when
            the bundled setup script registered them itself

        Raises:
            InstallError: Download, extraction or setup failed
        """
        logger.info(f"🚀 Installing {layer.display_name} {layer.version}")
        archive = self.download(layer)
        source = self.extract(layer, archive)

        script = source / layer.setup_script
        if use_setup_script and script.is_file():
            os.chmod(script, 0o755)
            try:
                self.runner.run([f"./{layer.setup_script}", "install"], env=wine_env, cwd=str(source))
            except CommandError as e:
                raise InstallError(f"{layer.setup_script} failed: {e.output.strip()}") from e
            overrides: List[RegistryEntry] = []
        else:
            logger.info(f"Copying {layer.display_name} DLLs into the prefix")
            overrides = self._copy_dlls(source, Path(prefix))

        success(logger, f"{layer.display_name} {layer.version} installed")
        return overrides

    def _copy_dlls(self, source: Path, prefix: Path) -> List[RegistryEntry]:
        windows_dir = prefix / "drive_c" / "windows"
        names = []
        for arch_dir, system_dir in DLL_TARGETS.items():
            dlls = sorted((source / arch_dir).glob("*.dll"))
            if not dlls:
                continue
            target_dir = windows_dir / system_dir
            target_dir.mkdir(parents=True, exist_ok=True)
            for dll in dlls:
                shutil.copy2(dll, target_dir / dll.name)
                if dll.stem not in names:
                    names.append(dll.stem)

        if not names:
            raise InstallError(f"No DLLs found in {source}")
        return [RegistryEntry(DLL_OVERRIDES_KEY, name, "native") for name in names]

