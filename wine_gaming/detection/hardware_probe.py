"""
hardware_probe.py
Wine Gaming Setup - Hardware Probe

Detects the GPU vendor and model, CPU core count, available memory, kernel
version, windowing protocol and Vulkan driver support of the host, and
returns them as an immutable HostProfile.

Every probe step is best effort: a missing or failing tool is logged as a
warning and the run continues with a degraded profile.
"""

import os
import re
import enum
import logging
import platform
from dataclasses import dataclass
from typing import Dict, List, Mapping, Optional, Tuple

from wine_gaming.utils.command_runner import CommandRunner
from wine_gaming.utils.log import success

logger = logging.getLogger('HardwareProbe')

MEMINFO_PATH = "/proc/meminfo"
RAM_HEADROOM = 0.8

DISPLAY_CLASS_PATTERN = re.compile(r"vga|3d|display", re.IGNORECASE)


class GpuVendor(enum.Enum):
    INTEL = "intel"
    NVIDIA = "nvidia"
    AMD = "amd"
    UNKNOWN = "unknown"


# Checked in this order within a single lspci line
KNOWN_VENDORS = (GpuVendor.INTEL, GpuVendor.NVIDIA, GpuVendor.AMD)

VULKAN_DRIVER_PATTERNS: Dict[GpuVendor, re.Pattern] = {
    GpuVendor.INTEL: re.compile(r"intel|anv", re.IGNORECASE),
    GpuVendor.NVIDIA: re.compile(r"nvidia", re.IGNORECASE),
    GpuVendor.AMD: re.compile(r"amd|radv", re.IGNORECASE),
}

VULKAN_DRIVER_NAMES = {
    GpuVendor.INTEL: "Intel (ANV)",
    GpuVendor.NVIDIA: "NVIDIA",
    GpuVendor.AMD: "AMD (RADV)",
}

INTEL_DRIVER_PACKAGES = {
    "dpkg": re.compile(r"mesa-vulkan-drivers|intel-media-va-driver"),
    "pacman": re.compile(r"mesa|vulkan-intel"),
}

INTEL_DRIVER_HINTS = [
    "Ubuntu/Debian: sudo apt install mesa-vulkan-drivers intel-media-va-driver i965-va-driver",
    "Arch: sudo pacman -S mesa vulkan-intel intel-media-driver",
    "Fedora: sudo dnf install mesa-vulkan-drivers intel-media-driver",
]


@dataclass(frozen=True)
class HostProfile:
    """Detected host properties, computed once per run"""
    gpu_vendor: GpuVendor = GpuVendor.UNKNOWN
    gpu_model: str = ""
    cpu_cores: int = 1
    available_ram_mb: int = 0
    kernel_version: str = ""
    is_wayland: bool = False
    graphics_api_available: bool = False
    graphics_api_vendor_match: bool = False
    mesa_version: str = ""
    vendor_drivers_present: Optional[bool] = None

    @property
    def protocol(self) -> str:
        return "Wayland" if self.is_wayland else "X11"


def parse_gpu(lspci_output: str) -> Tuple[GpuVendor, str]:
    """
    Classify the GPU from lspci output

    Display-class lines are walked in listing order and the first one that
    names a known vendor wins.

    Args:
        lspci_output: Raw ``lspci`` output

    Returns:
        Tuple[GpuVendor, str]: Vendor and model description
    """
    for line in lspci_output.splitlines():
        if not DISPLAY_CLASS_PATTERN.search(line):
            continue
        lowered = line.lower()
        for vendor in KNOWN_VENDORS:
            if vendor.value in lowered:
                parts = line.split(":", 2)
                model = parts[2].strip() if len(parts) == 3 else line.strip()
                return vendor, model
    return GpuVendor.UNKNOWN, ""


def available_ram_from_meminfo(meminfo: str) -> int:
    """80% of MemAvailable in megabytes, rounded down and never negative"""
    match = re.search(r"^MemAvailable:\s+(\d+)\s*kB", meminfo, re.MULTILINE)
    if not match:
        return 0
    free_mb = int(match.group(1)) // 1024
    return headroom_mb(free_mb)


def headroom_mb(free_mb: int) -> int:
    # Integer arithmetic keeps floor(0.8 * free_mb) exact
    return max(0, free_mb * 4 // 5)


def is_wayland_session(environ: Mapping[str, str]) -> bool:
    return environ.get("XDG_SESSION_TYPE") == "wayland" or bool(environ.get("WAYLAND_DISPLAY"))


def vulkan_matches_vendor(vulkaninfo_output: str, vendor: GpuVendor) -> bool:
    pattern = VULKAN_DRIVER_PATTERNS.get(vendor)
    if pattern is None:
        return False
    return bool(pattern.search(vulkaninfo_output))


def parse_mesa_version(glxinfo_output: str) -> str:
    for line in glxinfo_output.splitlines():
        if "OpenGL version" in line:
            fields = line.split(" ")
            return fields[3] if len(fields) > 3 else line.split(":", 1)[-1].strip()
    return ""


def count_cpu_cores() -> int:
    """Logical processors available to this process"""
    try:
        return max(1, len(os.sched_getaffinity(0)))
    except AttributeError:
        return max(1, os.cpu_count() or 1)


class HardwareProbe:
    """Detects hardware components and builds a HostProfile"""

    def __init__(self, runner: Optional[CommandRunner] = None,
                 environ: Optional[Mapping[str, str]] = None,
                 meminfo_path: str = MEMINFO_PATH):
        self.runner = runner or CommandRunner()
        self.environ = environ if environ is not None else os.environ
        self.meminfo_path = meminfo_path

    def detect(self) -> HostProfile:
        """Main method to detect all hardware components"""
        logger.info("🔍 Detecting system and hardware...")

        kernel_version = platform.release()
        logger.info(f"🐧 Kernel: {kernel_version}")

        mesa_version = self._detect_mesa()

        is_wayland = is_wayland_session(self.environ)
        logger.info(f"🖥️  Protocol: {'Wayland' if is_wayland else 'X11'}")

        gpu_vendor, gpu_model = self._detect_gpu()

        cpu_cores = count_cpu_cores()
        logger.info(f"🖥️  CPU cores: {cpu_cores}")

        available_ram_mb = self._detect_ram()
        logger.info(f"🧠 Available RAM: {available_ram_mb}MB")

        vendor_drivers_present = None
        if gpu_vendor is GpuVendor.INTEL:
            logger.info("Applying Intel Graphics specific checks", extra={'tag': 'intel'})
            vendor_drivers_present = self._check_intel_drivers()

        graphics_api_available, graphics_api_vendor_match = self._detect_vulkan(gpu_vendor)

        return HostProfile(
            gpu_vendor=gpu_vendor,
            gpu_model=gpu_model,
            cpu_cores=cpu_cores,
            available_ram_mb=available_ram_mb,
            kernel_version=kernel_version,
            is_wayland=is_wayland,
            graphics_api_available=graphics_api_available,
            graphics_api_vendor_match=graphics_api_vendor_match,
            mesa_version=mesa_version,
            vendor_drivers_present=vendor_drivers_present,
        )

    def _detect_mesa(self) -> str:
        if not self.runner.which("glxinfo"):
            return ""
        output = self.runner.probe(["glxinfo"]) or ""
        mesa_version = parse_mesa_version(output)
        if mesa_version:
            logger.info(f"🎨 Mesa/OpenGL: {mesa_version}")
        return mesa_version

    def _detect_gpu(self) -> Tuple[GpuVendor, str]:
        if not self.runner.which("lspci"):
            logger.warning("lspci not found, GPU cannot be identified")
            return GpuVendor.UNKNOWN, ""

        output = self.runner.probe(["lspci"])
        if output is None:
            logger.warning("lspci failed, GPU cannot be identified")
            return GpuVendor.UNKNOWN, ""

        vendor, model = parse_gpu(output)
        if vendor is GpuVendor.INTEL:
            logger.info(f"Intel GPU detected: {model}", extra={'tag': 'intel'})
        elif vendor is GpuVendor.UNKNOWN:
            logger.warning("GPU not identified")
        else:
            logger.info(f"{vendor.name} GPU detected: {model}", extra={'tag': 'gpu'})
        return vendor, model

    def _detect_ram(self) -> int:
        try:
            with open(self.meminfo_path, "r") as f:
                return available_ram_from_meminfo(f.read())
        except OSError as e:
            logger.warning(f"Failed to read {self.meminfo_path}: {e}")
            return 0

    def _check_intel_drivers(self) -> bool:
        """Check that Mesa / Intel media driver packages are installed"""
        logger.info("Checking Intel drivers...", extra={'tag': 'intel'})
        listings: List[Tuple[str, List[str]]] = [
            ("dpkg", ["dpkg", "-l"]),
            ("pacman", ["pacman", "-Q"]),
        ]
        for family, argv in listings:
            if not self.runner.which(argv[0]):
                continue
            output = self.runner.probe(argv) or ""
            if INTEL_DRIVER_PACKAGES[family].search(output):
                success(logger, "Intel drivers detected")
                return True

        logger.warning("Intel drivers may not be optimized")
        for hint in INTEL_DRIVER_HINTS:
            logger.info(hint)
        return False

    def _detect_vulkan(self, vendor: GpuVendor) -> Tuple[bool, bool]:
        logger.info("🌋 Checking Vulkan support...")
        if not self.runner.which("vulkaninfo"):
            logger.warning("vulkaninfo not found")
            return False, False

        output = self.runner.probe(["vulkaninfo"]) or ""
        matched = vulkan_matches_vendor(output, vendor)
        if vendor is not GpuVendor.UNKNOWN:
            report_vulkan_match(vendor, matched)
        return True, matched


def report_vulkan_match(vendor: GpuVendor, matched: bool) -> None:
    name = VULKAN_DRIVER_NAMES[vendor]
    tag = 'intel' if vendor is GpuVendor.INTEL else 'gpu'
    if matched:
        logger.info(f"Vulkan {name} available", extra={'tag': tag})
    else:
        logger.warning(f"Vulkan {name} may not be working")
