"""Data models for pkgstate.

This module exports the core data structures used throughout the application.
"""

from pkgstate.models.package import (
    AptPackage,
    Backend,
    DebPackage,
    DesiredState,
    GooGetPackage,
    ManagedPackage,
    MSIPackage,
    RPMPackage,
    YumPackage,
    ZypperPackage,
)
from pkgstate.models.resource import (
    AptBlock,
    DebBlock,
    GooGetBlock,
    MSIBlock,
    PackageResourceSpec,
    RemoteFile,
    RPMBlock,
    SourceFile,
    YumBlock,
    ZypperBlock,
)

__all__ = [
    "AptBlock",
    "AptPackage",
    "Backend",
    "DebBlock",
    "DebPackage",
    "DesiredState",
    "GooGetBlock",
    "GooGetPackage",
    "MSIBlock",
    "MSIPackage",
    "ManagedPackage",
    "PackageResourceSpec",
    "RPMBlock",
    "RPMPackage",
    "RemoteFile",
    "SourceFile",
    "YumBlock",
    "YumPackage",
    "ZypperBlock",
    "ZypperPackage",
]
