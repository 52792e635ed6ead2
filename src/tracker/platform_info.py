"""Operating system lookup used to tag ``$os`` / ``$os_version``."""

import platform
from dataclasses import dataclass

UNKNOWN = "unknown"

# platform.system() names mapped to the labels analytics dashboards expect
_OS_NAMES = {
    "Darwin": "Mac OS X",
    "Windows": "Windows",
    "Linux": "Linux",
    "FreeBSD": "FreeBSD",
}


@dataclass(frozen=True)
class PlatformInfo:
    os_name: str = UNKNOWN
    os_version: str = UNKNOWN


def detect_platform() -> PlatformInfo:
    """Describe the running OS, substituting ``"unknown"`` for blanks."""
    system = platform.system()
    if not system:
        return PlatformInfo()

    if system == "Darwin":
        version = platform.mac_ver()[0]
    else:
        version = platform.release()

    return PlatformInfo(
        os_name=_OS_NAMES.get(system, system),
        os_version=version or UNKNOWN,
    )
