"""
script_generator.py
Wine Gaming Setup - Helper Script Generator

Writes the helper scripts that live next to the prefix. Each one sources
wine_gaming_env.sh first, so they always run against the tuned environment.
Wine commands inside the templates are rendered for the resolved runtime
(native binaries or the Flatpak package).
"""

import logging
from pathlib import Path
from typing import Dict

from wine_gaming.detection.dependency_checker import WINETRICKS_HINTS, WineRuntime
from wine_gaming.profiles.profile_selector import ENV_FILENAME
from wine_gaming.utils.log import success
from wine_gaming.utils.writers import SHEBANG, write_file

logger = logging.getLogger('ScriptGenerator')

SOURCE_ENV = f'source "$(dirname "$0")/{ENV_FILENAME}"'

CONFIGURE_TEMPLATE = """\
__SHEBANG__
__SOURCE_ENV__
__WINECFG__
"""

INSTALL_MORE_TEMPLATE = """\
__SHEBANG__
__SOURCE_ENV__
if command -v winetricks &> /dev/null; then
    winetricks
else
    echo "❌ Winetricks not found"
__HINTS__
fi
"""

CLEANUP_TEMPLATE = """\
__SHEBANG__
__SOURCE_ENV__

echo "🧹 Cleaning caches and temporary files..."
rm -rf "$WINEPREFIX/drive_c/users/$USER/Temp/"* 2>/dev/null
rm -rf "$WINEPREFIX/drive_c/windows/Temp/"* 2>/dev/null
find "$WINEPREFIX" -name "*.log" -delete 2>/dev/null
find "$WINEPREFIX" -name "*.tmp" -delete 2>/dev/null

if [ -d "$HOME/.cache/dxvk-cache" ]; then
    echo "🗑️  Clearing DXVK cache..."
    rm -rf "$HOME/.cache/dxvk-cache/"*
fi

if [ -d "$HOME/.cache/mesa_shader_cache" ]; then
    echo "🗑️  Clearing Mesa shader cache..."
    rm -rf "$HOME/.cache/mesa_shader_cache/"*
fi

echo "📝 Compacting the Wine registry..."
__WINESERVER__ -k
REG_BACKUP="$(mktemp --suffix=.reg)"
__WINE__ regedit /E "$REG_BACKUP" 2>/dev/null
if [ -s "$REG_BACKUP" ]; then
    __WINE__ regedit /D HKEY_CURRENT_USER 2>/dev/null
    __WINE__ regedit "$REG_BACKUP" 2>/dev/null
fi
rm -f "$REG_BACKUP"

echo "✅ Cleanup complete"
"""

RUN_TEMPLATE = """\
__SHEBANG__
__SOURCE_ENV__

if [ -z "$1" ]; then
    echo "Usage: $0 <program.exe>"
    exit 1
fi

echo "🎮 Running: $1"
cd "$(dirname "$1")" 2>/dev/null || true
__WINE__ "$1"
"""

SCRIPT_TEMPLATES = {
    "configure.sh": CONFIGURE_TEMPLATE,
    "install_more.sh": INSTALL_MORE_TEMPLATE,
    "cleanup.sh": CLEANUP_TEMPLATE,
    "wine_run.sh": RUN_TEMPLATE,
}


def render_script(template: str, runtime: WineRuntime) -> str:
    hints = "\n".join(f'    echo "To install: {hint}"' for hint in WINETRICKS_HINTS)
    replacements = {
        "__SHEBANG__": SHEBANG,
        "__SOURCE_ENV__": SOURCE_ENV,
        "__HINTS__": hints,
        "__WINECFG__": runtime.shell_command("winecfg"),
        "__WINESERVER__": runtime.shell_command("wineserver"),
        "__WINE__": runtime.shell_command("wine"),
    }
    for token, value in replacements.items():
        template = template.replace(token, value)
    return template


class ScriptGenerator:
    """Writes configure.sh, install_more.sh, cleanup.sh and wine_run.sh"""

    def __init__(self, prefix: Path, runtime: WineRuntime):
        self.prefix = Path(prefix)
        self.runtime = runtime

    def generate(self) -> Dict[str, Path]:
        logger.info("🛠️  Creating helper scripts...")
        written = {}
        for name, template in SCRIPT_TEMPLATES.items():
            written[name] = write_file(self.prefix / name, render_script(template, self.runtime),
                                       executable=True)
        success(logger, "Helper scripts created")
        return written

