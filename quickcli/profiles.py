"""
Connection profile lookup.

Maps a VM name to a saved remote-client profile (Remmina .remmina files),
either through an explicit override from the configuration or by
scanning the profile directory for a file whose name contains the VM name.
"""

import logging
from pathlib import Path

logger = logging.getLogger(__name__)

PROFILE_SUFFIX = ".remmina"


def scan_profiles(profile_dir: Path) -> list[Path]:
    """
    List connection profile files in a directory.

    Entries are returned in directory enumeration order. A missing or
    unreadable directory yields an empty list.

    Args:
        profile_dir: Directory holding connection profiles

    Returns:
        Paths of regular files with the profile extension
    """
    profiles = []
    try:
        entries = list(profile_dir.iterdir())
    except OSError as e:
        logger.debug("Cannot scan profile directory %s: %s", profile_dir, e)
        return []

    for entry in entries:
        try:
            if entry.suffix == PROFILE_SUFFIX and entry.is_file():
                profiles.append(entry)
        except OSError:
            continue

    return profiles


def resolve_profile(
    vm_name: str,
    overrides: dict[str, str],
    profile_dir: Path
) -> Path | None:
    """
    Find the connection profile for a VM.

    Resolution order:
    1. An override keyed by the lower-cased VM name always wins.
    2. Otherwise, profiles whose lower-cased stem contains the VM name
       are candidates. A single candidate is returned as is.
    3. Among several candidates, one whose stem equals the VM name is
       preferred; failing that the first one enumerated is returned.
       Enumeration order depends on the filesystem.

    Args:
        vm_name: VM name (any case)
        overrides: Lower-cased VM name to profile path
        profile_dir: Directory to scan for profiles

    Returns:
        Path of the chosen profile, or None if nothing matched
    """
    vm_key = vm_name.lower()

    if vm_key in overrides:
        return Path(overrides[vm_key])

    matches = [p for p in scan_profiles(profile_dir) if vm_key in p.stem.lower()]

    if not matches:
        return None

    if len(matches) == 1:
        return matches[0]

    for match in matches:
        if match.stem.lower() == vm_key:
            return match

    logger.debug(
        "Ambiguous profiles for %s: %s; using %s",
        vm_name,
        ", ".join(m.name for m in matches),
        matches[0].name,
    )
    return matches[0]
