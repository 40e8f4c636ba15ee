"""
Host architecture detection.

The manifest publishes architecture-specific tools under Debian-style
architecture names, so the machine type reported by the OS is normalized
to one of them:

    x86_64, i386, aarch64, armel, mips64el, mipsel
"""

import platform

SUPPORTED_ARCHITECTURES = ("x86_64", "i386", "aarch64", "armel", "mips64el", "mipsel")


def detect_architecture() -> str:
    """
    Detect CPU architecture of the host.

    Returns:
        Normalized architecture name. Unknown machine types are returned
        as reported by the OS, so a manifest lookup fails for them with
        a meaningful message.

    Example:
        >>> detect_architecture()
        'x86_64'
    """
    return normalize_architecture(platform.machine())


def normalize_architecture(machine: str) -> str:
    """Map a machine type (as returned by platform.machine()) to a manifest name."""
    machine = machine.lower()

    if machine in ("x86_64", "amd64", "x64"):
        return "x86_64"
    elif machine in ("i386", "i486", "i586", "i686", "x86"):
        return "i386"
    elif machine in ("aarch64", "arm64", "armv8l"):
        return "aarch64"
    elif machine.startswith("arm"):
        return "armel"
    elif machine == "mips64":
        return "mips64el"
    elif machine == "mips":
        return "mipsel"
    else:
        return machine
