"""Helpers for Fully Qualified Board Names (FQBN).

An FQBN has the form ``vendor:architecture:board[:options]``, for example
``arduino:avr:uno`` or ``esp32:esp32:esp32s3:PSRAM=opi``. The first two
segments identify the core (platform) that owns the board.
"""

WILDCARD_ARCHITECTURE = "*"


def core_from_fqbn(fqbn: str) -> str:
    """Return the core identifier of a board (e.g. 'arduino:avr')."""
    return ":".join(fqbn.split(":")[0:2])


def architecture_from_fqbn(fqbn: str) -> str:
    """Return the architecture segment of a board or core identifier."""
    parts = fqbn.split(":")
    return parts[1] if len(parts) > 1 else ""


def core_in_architectures(core: str, architectures: list[str]) -> bool:
    """Check whether a library declaring ``architectures`` claims ``core``.

    Args:
        core: Core identifier (e.g. 'arduino:avr')
        architectures: Architectures from library.properties

    Returns:
        True if the wildcard or the core's architecture is declared
    """
    core_arch = architecture_from_fqbn(core)
    for arch in architectures:
        if arch == WILDCARD_ARCHITECTURE or arch.lower() == core_arch:
            return True
    return False
