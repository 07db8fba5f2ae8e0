#!/usr/bin/env python3
"""
Installable program catalog for Maintenance Orchestrator
Built-in entries plus optional overrides loaded from a YAML file
"""

from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Iterable, Iterator, List, Optional
import logging

import yaml

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class InstallableProgram:
    """Static catalog entry; identity is the name"""
    name: str
    description: str
    download_url: str
    silent_install_args: str = ""


BUILTIN_PROGRAMS = (
    InstallableProgram(
        name="Google Chrome",
        description="Fast, secure, and free web browser.",
        download_url=(
            "https://dl.google.com/tag/s/appguid%3D%7B8A69D345-D564-463C-AFF1-A69D9E530F96%7D"
            "%26iid%3D%7B36E22C9B-1919-C064-946D-24017C7E7796%7D%26lang%3Den%26browser%3D3"
            "%26usagestats%3D0%26appname%3DGoogle%2520Chrome%26needsadmin%3Dprefers"
            "%26ap%3Dx64-stable-statsdef_1%26installdataindex%3Dempty/update2/installers/ChromeSetup.exe"
        ),
        silent_install_args="/silent /install",
    ),
    InstallableProgram(
        name="Mozilla Firefox",
        description="Free and open-source web browser.",
        download_url="https://download.mozilla.org/?product=firefox-latest&os=win64&lang=en-US",
        silent_install_args="-ms",
    ),
    InstallableProgram(
        name="VLC Media Player",
        description="Free and open source cross-platform multimedia player.",
        download_url="https://get.videolan.org/vlc/3.0.18/win64/vlc-3.0.18-win64.exe",
        silent_install_args="/S",
    ),
    InstallableProgram(
        name="7-Zip",
        description="File archiver with a high compression ratio.",
        download_url="https://www.7-zip.org/a/7z2301-x64.exe",
        silent_install_args="/S",
    ),
    InstallableProgram(
        name="MemReduct",
        description="Lightweight real-time memory management application.",
        download_url="https://github.com/henrypp/memreduct/releases/latest/download/memreduct-3.4-setup.exe",
        silent_install_args="/S",
    ),
)


class ProgramCatalog:
    """Name-indexed, read-only set of installable programs"""

    def __init__(self, programs: Iterable[InstallableProgram] = BUILTIN_PROGRAMS):
        self._programs: Dict[str, InstallableProgram] = {}
        for program in programs:
            self._programs[program.name.lower()] = program

    def __iter__(self) -> Iterator[InstallableProgram]:
        return iter(self._programs.values())

    def __len__(self) -> int:
        return len(self._programs)

    def __contains__(self, name: object) -> bool:
        return isinstance(name, str) and name.lower() in self._programs

    def get(self, name: str) -> InstallableProgram:
        """Look up a program by name, case-insensitively"""
        try:
            return self._programs[name.lower()]
        except KeyError:
            raise KeyError(f"Unknown program '{name}'. Available: {', '.join(self.names())}") from None

    def names(self) -> List[str]:
        return [program.name for program in self._programs.values()]

    @classmethod
    def load(cls, catalog_file: Optional[str] = None) -> "ProgramCatalog":
        """Built-in programs, overridden or extended by entries from ``catalog_file``.

        The file holds a top-level ``programs`` list of mappings with keys
        name, description, download_url and silent_install_args.
        """
        programs = {program.name.lower(): program for program in BUILTIN_PROGRAMS}
        if not catalog_file:
            return cls(programs.values())

        path = Path(catalog_file).expanduser()
        if not path.exists():
            return cls(programs.values())

        try:
            with open(path, 'r') as f:
                data = yaml.safe_load(f) or {}
        except (OSError, yaml.YAMLError) as e:
            logger.error(f"Failed to load program catalog {path}: {e}")
            return cls(programs.values())

        entries = data.get('programs') if isinstance(data, dict) else None
        if not isinstance(entries, list):
            if entries is not None or not isinstance(data, dict):
                logger.error(f"Ignoring program catalog {path}: expected a 'programs' list")
            return cls(programs.values())

        for entry in entries:
            try:
                program = InstallableProgram(
                    name=str(entry['name']),
                    description=str(entry.get('description', '')),
                    download_url=str(entry['download_url']),
                    silent_install_args=str(entry.get('silent_install_args', '')),
                )
            except (KeyError, TypeError, AttributeError) as e:
                logger.warning(f"Skipping invalid catalog entry {entry!r}: {e}")
                continue
            programs[program.name.lower()] = program

        logger.debug(f"Loaded program catalog with {len(programs)} entries")
        return cls(programs.values())
