"""
profile_selector.py
Wine Gaming Setup - Profile Selector

Maps a HostProfile to the registry overrides, winetricks libraries,
environment variables and DXVK options for the prefix. Every table is
assembled in the same layered order: base, then the Wayland block, then the
GPU vendor block. Selection is a pure function of its inputs.
"""

import logging
from collections import OrderedDict
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Dict, Iterable, List, Optional, Tuple, Union

from wine_gaming.detection.hardware_probe import GpuVendor, HostProfile

logger = logging.getLogger('ProfileSelector')

WINE_ARCH = "win64"
WINE_KEY = r"HKEY_CURRENT_USER\Software\Wine"

ENV_FILENAME = "wine_gaming_env.sh"
DXVK_CONF_FILENAME = "dxvk.conf"

RegistryValue = Union[int, str]


@dataclass(frozen=True)
class RegistryEntry:
    key: str
    name: str
    value: RegistryValue


@dataclass(frozen=True)
class ConfigProfile:
    """Everything that gets written into and installed in the prefix"""
    registry_entries: Tuple[RegistryEntry, ...]
    library_list: Tuple[str, ...]
    env_vars: "OrderedDict[str, str]"
    compiler_threads: int
    translation_layer_config_path: Optional[Path] = None
    translation_layer_options: "OrderedDict[str, str]" = field(default_factory=OrderedDict)
    banner: Tuple[str, ...] = ()


def _entries(key: str, values: Iterable[Tuple[str, RegistryValue]]) -> List[RegistryEntry]:
    return [RegistryEntry(f"{WINE_KEY}\\{key}", name, value) for name, value in values]


BASE_REGISTRY = (
    _entries("DirectSound", [
        ("DefaultBitsPerSample", 16),
        ("DefaultSampleRate", 44100),
    ])
    + _entries("DirectInput", [
        ("MouseWarpOverride", "force"),
    ])
    + _entries("X11 Driver", [
        ("GrabPointer", "Y"),
        ("UseTakeFocus", "N"),
        ("Decorated", "Y"),
        ("ScreenDepth", 32),
    ])
)

WAYLAND_REGISTRY = _entries("Wayland Driver", [
    ("DecorationMode", 1),
    ("ProcessEvents", "Y"),
])

INTEL_PCI_VENDOR_ID = 0x8086

INTEL_REGISTRY = _entries("Direct3D", [
    ("VideoPciDeviceID", 0x0000),
    ("VideoPciVendorID", INTEL_PCI_VENDOR_ID),
    ("VideoMemorySize", 0x40000000),
    ("UseGLSL", "enabled"),
    ("OffScreenRenderingMode", "fbo"),
    ("RenderTargetLockMode", "disabled"),
    ("Multisampling", "enabled"),
    ("AlwaysOffscreen", "disabled"),
    ("StrictDrawOrdering", "disabled"),
])

BASE_LIBRARIES = (
    "corefonts",
    "vcrun2019",
    "vcrun2022",
    "dotnet48",
    "d3dx9",
    "d3dx10",
    "d3dx11",
    "d3dcompiler_43",
    "d3dcompiler_47",
    "xact",
    "xinput",
)

INTEL_LIBRARIES = ("physx", "openal", "dsound")

WAYLAND_ENV = [
    ("WINE_VK_USE_FSR", "1"),
    ("SDL_VIDEODRIVER", "wayland"),
    ("QT_QPA_PLATFORM", "wayland"),
    ("GDK_BACKEND", "wayland"),
]


def compiler_threads(cpu_cores: int) -> int:
    """DXVK shader compiler threads: half the cores, at least two"""
    return cpu_cores // 2 if cpu_cores >= 4 else 2


def cpu_topology(cpu_cores: int) -> str:
    count = cpu_cores // 2 if cpu_cores >= 8 else cpu_cores
    return f"{count}:{2 if cpu_cores >= 4 else 1}"


def _base_env(host: HostProfile, prefix: Path) -> List[Tuple[str, str]]:
    return [
        ("WINEPREFIX", str(prefix)),
        ("WINEDEBUG", "-all"),
        ("WINE_CPU_TOPOLOGY", cpu_topology(host.cpu_cores)),
        ("DXVK_STATE_CACHE", "1"),
        ("DXVK_LOG_LEVEL", "warn"),
        ("VKD3D_CONFIG", "dxr"),
        ("VKD3D_SHADER_MODEL", "6_6"),
        ("__GL_THREADED_OPTIMIZATIONS", "1"),
        ("__GL_SHADER_DISK_CACHE", "1"),
        ("mesa_glthread", "true"),
        ("WINE_RT_POLICY", "2"),
    ]


def _intel_env(host: HostProfile, prefix: Path) -> List[Tuple[str, str]]:
    return [
        ("DXVK_HUD", "fps,memory"),
        ("INTEL_DEBUG", ""),
        ("ANV_SAMPLE_MASK_OUT_OPENGL_BEHAVIOUR", "true"),
        ("MESA_LOADER_DRIVER_OVERRIDE", "i965"),
        ("MESA_GL_VERSION_OVERRIDE", "4.6"),
        ("MESA_GLSL_VERSION_OVERRIDE", "460"),
        ("DXVK_CONFIG_FILE", str(prefix / DXVK_CONF_FILENAME)),
        ("VK_ICD_FILENAMES", "/usr/share/vulkan/icd.d/intel_icd.x86_64.json"),
        ("WINEDLLOVERRIDES", "d3d11=n;dxgi=n"),
        ("WINE_HEAP_DELAY_FREE", "1"),
    ]


def _nvidia_env(host: HostProfile, prefix: Path) -> List[Tuple[str, str]]:
    return [
        ("DXVK_HUD", "fps,memory,gpuload"),
        ("__GL_SYNC_TO_VBLANK", "0"),
        ("__GL_VRR_ALLOWED", "1"),
        ("NVIDIA_THREADED_OPTIMIZATIONS", "1"),
    ]


def _amd_env(host: HostProfile, prefix: Path) -> List[Tuple[str, str]]:
    return [
        ("DXVK_HUD", "fps,memory,gpuload"),
        ("RADV_PERFTEST", "gpl,sam"),
        ("ACO_DEBUG", "validateir,validatera"),
        ("MESA_VK_VERSION_OVERRIDE", "1.3"),
    ]


def _generic_env(host: HostProfile, prefix: Path) -> List[Tuple[str, str]]:
    return [("DXVK_HUD", "fps,memory")]


VENDOR_ENV: Dict[GpuVendor, Callable[[HostProfile, Path], List[Tuple[str, str]]]] = {
    GpuVendor.INTEL: _intel_env,
    GpuVendor.NVIDIA: _nvidia_env,
    GpuVendor.AMD: _amd_env,
    GpuVendor.UNKNOWN: _generic_env,
}

VENDOR_BANNERS = {
    GpuVendor.INTEL: "🔷 Environment optimized for Intel Graphics loaded!",
    GpuVendor.NVIDIA: "💚 Environment optimized for NVIDIA loaded!",
    GpuVendor.AMD: "❤️ Environment optimized for AMD loaded!",
    GpuVendor.UNKNOWN: "🎮 Generic environment loaded!",
}

_unhandled = (set(GpuVendor) - set(VENDOR_ENV)) | (set(GpuVendor) - set(VENDOR_BANNERS))
if _unhandled:
    raise RuntimeError(f"Vendor handlers missing for: {sorted(v.value for v in _unhandled)}")


def _layer(target: "OrderedDict[str, str]", layer: Iterable[Tuple[str, str]]) -> None:
    """Add a layer of variables; keys set by an earlier layer are kept"""
    for key, value in layer:
        if key in target:
            logger.debug(f"Keeping earlier value of {key}")
            continue
        target[key] = value


def _dxvk_options(threads: int) -> "OrderedDict[str, str]":
    return OrderedDict([
        ("dxgi.maxFrameLatency", "1"),
        ("d3d11.samplerAnisotropy", "4"),
        ("d3d9.samplerAnisotropy", "4"),
        ("d3d11.invariantPosition", "True"),
        ("d3d11.floatControls", "Strict"),
        ("dxvk.enableAsync", "True"),
        ("dxvk.numCompilerThreads", str(threads)),
    ])


def _banner(host: HostProfile, prefix: Path) -> Tuple[str, ...]:
    return (
        VENDOR_BANNERS[host.gpu_vendor],
        f"📁 Prefix: {prefix}",
        f"🖥️  GPU: {host.gpu_vendor.value} - {host.gpu_model}",
        f"🧠 Using {host.available_ram_mb}MB of available RAM",
        f"🐧 Kernel: {host.kernel_version}",
        f"🖥️  Protocol: {host.protocol}",
    )


def select_profile(host: HostProfile, prefix: Path) -> ConfigProfile:
    """
    Build the configuration profile for a host

    Args:
        host: Detected host properties
        prefix: Wine prefix the profile will be applied to

    Returns:
        ConfigProfile: Registry entries, libraries, environment and DXVK options
    """
    prefix = Path(prefix)
    is_intel = host.gpu_vendor is GpuVendor.INTEL

    registry = list(BASE_REGISTRY)
    if host.is_wayland:
        registry += WAYLAND_REGISTRY
    if is_intel:
        registry += INTEL_REGISTRY

    libraries = BASE_LIBRARIES + (INTEL_LIBRARIES if is_intel else ())

    env: "OrderedDict[str, str]" = OrderedDict()
    _layer(env, _base_env(host, prefix))
    if host.is_wayland:
        _layer(env, WAYLAND_ENV)
    _layer(env, VENDOR_ENV[host.gpu_vendor](host, prefix))

    threads = compiler_threads(host.cpu_cores)

    return ConfigProfile(
        registry_entries=tuple(registry),
        library_list=libraries,
        env_vars=env,
        compiler_threads=threads,
        translation_layer_config_path=prefix / DXVK_CONF_FILENAME if is_intel else None,
        translation_layer_options=_dxvk_options(threads) if is_intel else OrderedDict(),
        banner=_banner(host, prefix),
    )


def should_install_vkd3d(host: HostProfile) -> Tuple[bool, str]:
    """
    Decide whether VKD3D-Proton can be installed on this host

    Returns:
        Tuple[bool, str]: Decision and, when skipped, the reason
    """
    if not host.graphics_api_available:
        return False, "Vulkan not detected, skipping VKD3D-Proton"
    if host.gpu_vendor is GpuVendor.INTEL and not host.graphics_api_vendor_match:
        return False, "VKD3D may not work well with your Intel Graphics. Skipping..."
    return True, ""
