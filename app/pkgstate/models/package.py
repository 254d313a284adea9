"""Managed package models.

A managed package is the validated, backend-tagged form of a package
resource. There is one frozen dataclass per backend; name-based backends
carry a package name and a desired state, source-based backends carry the
artifact they install and are always desired INSTALLED.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, ClassVar

if TYPE_CHECKING:
    from pkgstate.models.resource import SourceFile


class Backend(Enum):
    """Enumeration of supported package backends."""

    APT = "apt"
    DEB = "deb"
    GOOGET = "googet"
    MSI = "msi"
    YUM = "yum"
    ZYPPER = "zypper"
    RPM = "rpm"

    @property
    def is_source_based(self) -> bool:
        """Check if packages of this backend are identified by an artifact."""
        return self in (Backend.DEB, Backend.MSI, Backend.RPM)


class DesiredState(str, Enum):
    """Desired state of a package resource.

    Attributes:
        INSTALLED: The package must be present.
        REMOVED: The package must be absent (name-based backends only).
    """

    INSTALLED = "installed"
    REMOVED = "removed"


@dataclass(frozen=True, slots=True)
class AptPackage:
    """A package managed through apt-get."""

    desired_state: DesiredState
    name: str

    backend: ClassVar[Backend] = Backend.APT


@dataclass(frozen=True, slots=True)
class GooGetPackage:
    """A package managed through googet."""

    desired_state: DesiredState
    name: str

    backend: ClassVar[Backend] = Backend.GOOGET


@dataclass(frozen=True, slots=True)
class YumPackage:
    """A package managed through yum."""

    desired_state: DesiredState
    name: str

    backend: ClassVar[Backend] = Backend.YUM


@dataclass(frozen=True, slots=True)
class ZypperPackage:
    """A package managed through zypper."""

    desired_state: DesiredState
    name: str

    backend: ClassVar[Backend] = Backend.ZYPPER


@dataclass(frozen=True, slots=True)
class DebPackage:
    """A .deb artifact installed with dpkg, or apt-get when pulling dependencies.

    Attributes:
        source: Location of the .deb file.
        pull_deps: Resolve and install dependencies through apt-get.
    """

    source: SourceFile
    pull_deps: bool = False

    backend: ClassVar[Backend] = Backend.DEB
    desired_state: ClassVar[DesiredState] = DesiredState.INSTALLED


@dataclass(frozen=True, slots=True)
class MSIPackage:
    """An .msi artifact installed with msiexec.

    Attributes:
        source: Location of the .msi file.
        properties: Extra ``KEY=VALUE`` properties passed to msiexec.
    """

    source: SourceFile
    properties: tuple[str, ...] = ()

    backend: ClassVar[Backend] = Backend.MSI
    desired_state: ClassVar[DesiredState] = DesiredState.INSTALLED


@dataclass(frozen=True, slots=True)
class RPMPackage:
    """An .rpm artifact installed with rpm, or yum when pulling dependencies.

    Attributes:
        source: Location of the .rpm file.
        pull_deps: Resolve and install dependencies through yum.
    """

    source: SourceFile
    pull_deps: bool = False

    backend: ClassVar[Backend] = Backend.RPM
    desired_state: ClassVar[DesiredState] = DesiredState.INSTALLED


# Packages identified by name and checked against an installed-package cache
NamedPackage = AptPackage | GooGetPackage | YumPackage | ZypperPackage

# Packages identified by the artifact used to install them
SourcePackage = DebPackage | MSIPackage | RPMPackage

ManagedPackage = NamedPackage | SourcePackage

NAMED_PACKAGE_TYPES: tuple[type, ...] = (AptPackage, GooGetPackage, YumPackage, ZypperPackage)
SOURCE_PACKAGE_TYPES: tuple[type, ...] = (DebPackage, MSIPackage, RPMPackage)


def package_label(package: ManagedPackage) -> str:
    """Return a short human-readable identifier for a managed package.

    Args:
        package: The managed package.

    Returns:
        The package name for name-based packages, the artifact location otherwise.
    """
    if isinstance(package, NAMED_PACKAGE_TYPES):
        return package.name
    return package.source.location
