"""
Pytest configuration and shared fixtures for Wine Gaming Setup tests.
"""

from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional, Tuple

import pytest

from wine_gaming.detection.hardware_probe import GpuVendor, HostProfile
from wine_gaming.errors import CommandError

INTEL_LSPCI = (
    "00:00.0 Host bridge: Intel Corporation 12th Gen Core Processor Host Bridge (rev 02)\n"
    "00:02.0 VGA compatible controller: Intel Corporation Alder Lake-P GT2 [Iris Xe Graphics] (rev 0c)\n"
    "00:14.0 USB controller: Intel Corporation Alder Lake PCH USB 3.2 xHCI Host Controller (rev 01)\n"
)

NVIDIA_LSPCI = (
    "00:00.0 Host bridge: Advanced Micro Devices, Inc. [AMD] Starship/Matisse Root Complex\n"
    "01:00.0 VGA compatible controller: NVIDIA Corporation GA104 [GeForce RTX 3070] (rev a1)\n"
)

UNKNOWN_LSPCI = (
    "00:00.0 Host bridge: Red Hat, Inc. QEMU PCIe Host bridge\n"
    "00:01.0 VGA compatible controller: Red Hat, Inc. Virtio GPU (rev 01)\n"
)

ALL_TOOLS = ("wine", "wineboot", "winetricks", "wget", "tar", "lspci", "vulkaninfo")


@dataclass
class RunCall:
    argv: List[str]
    env: Dict[str, str] = field(default_factory=dict)
    cwd: Optional[str] = None
    capture: bool = True

    @property
    def command(self) -> str:
        return " ".join(self.argv)


class FakeRunner:
    """Stands in for CommandRunner: no processes, every call recorded"""

    def __init__(self, tools=ALL_TOOLS, probes: Optional[Dict[str, str]] = None,
                 outputs: Optional[Dict[str, str]] = None):
        self.tools = set(tools)
        self.probes = dict(probes or {})
        self.outputs = dict(outputs or {})
        self.failures: Dict[str, Tuple[int, str]] = {}
        self.hooks: List[tuple] = []
        self.calls: List[RunCall] = []
        self.probed: List[List[str]] = []

    def fail(self, pattern: str, returncode: int = 1, output: str = "boom") -> None:
        """Make every run() whose command line contains pattern fail"""
        self.failures[pattern] = (returncode, output)

    def on_run(self, pattern: str, hook: Callable) -> None:
        """Call hook(call) for every run() whose command line contains pattern"""
        self.hooks.append((pattern, hook))

    def which(self, tool: str) -> Optional[str]:
        return f"/usr/bin/{tool}" if tool in self.tools else None

    def run(self, argv, env=None, cwd=None, capture=True) -> str:
        call = RunCall([str(arg) for arg in argv], dict(env or {}), cwd, capture)
        self.calls.append(call)

        for pattern, hook in self.hooks:
            if pattern in call.command:
                hook(call)
        for pattern, (returncode, output) in self.failures.items():
            if pattern in call.command:
                raise CommandError(call.argv, returncode, output)
        for pattern, output in self.outputs.items():
            if pattern in call.command:
                return output
        return ""

    def probe(self, argv) -> Optional[str]:
        self.probed.append([str(arg) for arg in argv])
        return self.probes.get(argv[0])

    def commands(self) -> List[str]:
        return [call.command for call in self.calls]


@pytest.fixture
def runner():
    """A host with native Wine, winetricks and every auxiliary tool"""
    return FakeRunner(outputs={"--version": "wine-9.0\n"})


@pytest.fixture
def make_host():
    """Factory for HostProfile values with test-friendly defaults"""
    def _make(**overrides) -> HostProfile:
        values = dict(
            gpu_vendor=GpuVendor.NVIDIA,
            gpu_model="NVIDIA Corporation GA104 [GeForce RTX 3070]",
            cpu_cores=8,
            available_ram_mb=12800,
            kernel_version="6.8.0-45-generic",
            is_wayland=False,
            graphics_api_available=True,
            graphics_api_vendor_match=True,
        )
        values.update(overrides)
        return HostProfile(**values)
    return _make

