from __future__ import annotations

import logging
import platform
from pathlib import Path
from typing import Any, Dict, Optional, Tuple

logger = logging.getLogger(__name__)

KNOWN_PLATFORMS = ("macos", "ubuntu", "wsl", "pi", "arch")


def _read_text(path: Path) -> Optional[str]:
    try:
        txt = path.read_text(encoding="utf-8", errors="ignore").strip("\x00\n ")
        return txt or None
    except OSError:
        return None


def _pick_platform(signals: Dict[str, Any], *, forced: Optional[str]) -> Tuple[str, str]:
    """Rule engine: pick a platform id + record why."""

    if forced:
        if forced not in KNOWN_PLATFORMS:
            raise ValueError(f"Unknown platform {forced!r} (expected one of {', '.join(KNOWN_PLATFORMS)})")
        return forced, "forced_platform"

    system = str(signals.get("system") or "").lower()
    release = str(signals.get("kernel_release") or "").lower()
    model = str(signals.get("device_tree_model") or "").lower()

    if system == "darwin":
        return "macos", "system_is_darwin"
    if system != "linux":
        raise RuntimeError(f"Unsupported operating system: {signals.get('system')}")

    # WSL kernels carry the vendor in the release string (e.g. 5.15.0-microsoft-standard-WSL2).
    if "microsoft" in release or "wsl" in release:
        return "wsl", "kernel_release_mentions_microsoft"
    if "raspberry pi" in model:
        return "pi", "device_tree_matches_rpi"
    if signals.get("arch_release"):
        return "arch", "arch_release_present"
    return "ubuntu", "linux_default"


def detect_platform(*, forced: Optional[str] = None, root: Path = Path("/")) -> Dict[str, Any]:
    signals: Dict[str, Any] = {
        "system": platform.system(),
        "kernel_release": platform.release(),
        "machine": platform.machine(),
        "device_tree_model": _read_text(root / "proc/device-tree/model")
        or _read_text(root / "sys/firmware/devicetree/base/model"),
        "arch_release": (root / "etc/arch-release").exists(),
    }
    platform_id, reason = _pick_platform(signals, forced=forced)
    logger.info("Platform detected: %s (%s)", platform_id, reason)
    return {"id": platform_id, "reason": reason, "signals": signals}
