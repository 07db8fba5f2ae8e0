"""
Maintenance Orchestrator - Installer Components

Program catalog and the download-then-install pipeline.
"""

from .catalog import InstallableProgram, ProgramCatalog, BUILTIN_PROGRAMS
from .pipeline import InstallerPipeline

__all__ = [
    'InstallableProgram',
    'ProgramCatalog',
    'BUILTIN_PROGRAMS',
    'InstallerPipeline',
]
