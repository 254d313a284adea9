"""Package resource descriptor models.

This module defines the Pydantic models for the raw package resource a
policy delivers to the agent: a desired state plus exactly one backend
block. The models accept any combination of blocks; deciding whether the
combination is meaningful is the job of the resource validator.
"""

from typing import Annotated

from pydantic import BaseModel, ConfigDict, Field

from pkgstate.models.package import Backend, DesiredState


class RemoteFile(BaseModel):
    """A package artifact retrievable over HTTP(S).

    Attributes:
        uri: Location of the artifact.
        sha256_checksum: Expected SHA-256 hex digest of the artifact.
    """

    model_config = ConfigDict(extra="forbid", frozen=True)

    uri: Annotated[str, Field(min_length=1, description="Artifact URI")]
    sha256_checksum: Annotated[
        str | None,
        Field(description="Expected SHA-256 hex digest"),
    ] = None


class SourceFile(BaseModel):
    """Location of a package artifact.

    Exactly one of ``local_path`` and ``remote`` must be set.

    Attributes:
        local_path: Path of the artifact on this machine.
        remote: Remote location of the artifact.
        allow_insecure: Permit plain-HTTP downloads.
    """

    model_config = ConfigDict(extra="forbid", frozen=True)

    local_path: Annotated[str | None, Field(description="Local artifact path")] = None
    remote: Annotated[RemoteFile | None, Field(description="Remote artifact")] = None
    allow_insecure: Annotated[bool, Field(description="Allow plain HTTP")] = False

    @property
    def location(self) -> str:
        """Return the local path or remote URI, whichever is set."""
        if self.local_path is not None:
            return self.local_path
        if self.remote is not None:
            return self.remote.uri
        return ""


class AptBlock(BaseModel):
    """Package installed by name through apt-get."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    name: Annotated[str, Field(description="Package name")]


class GooGetBlock(BaseModel):
    """Package installed by name through googet."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    name: Annotated[str, Field(description="Package name")]


class YumBlock(BaseModel):
    """Package installed by name through yum."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    name: Annotated[str, Field(description="Package name")]


class ZypperBlock(BaseModel):
    """Package installed by name through zypper."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    name: Annotated[str, Field(description="Package name")]


class DebBlock(BaseModel):
    """A .deb artifact."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    source: Annotated[SourceFile | None, Field(description="Artifact location")] = None
    pull_deps: Annotated[bool, Field(description="Install dependencies via apt-get")] = False


class MSIBlock(BaseModel):
    """An .msi artifact."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    source: Annotated[SourceFile | None, Field(description="Artifact location")] = None
    properties: Annotated[
        tuple[str, ...],
        Field(description="Extra KEY=VALUE properties for msiexec"),
    ] = ()


class RPMBlock(BaseModel):
    """An .rpm artifact."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    source: Annotated[SourceFile | None, Field(description="Artifact location")] = None
    pull_deps: Annotated[bool, Field(description="Install dependencies via yum")] = False


BackendBlock = AptBlock | DebBlock | GooGetBlock | MSIBlock | YumBlock | ZypperBlock | RPMBlock


class PackageResourceSpec(BaseModel):
    """A package resource as delivered by a policy.

    Attributes:
        desired_state: Whether the package must be installed or removed.
        apt, deb, googet, msi, yum, zypper, rpm: Backend blocks; exactly one
            must be set for the resource to validate.
    """

    model_config = ConfigDict(extra="forbid", frozen=True)

    desired_state: Annotated[
        DesiredState | None,
        Field(description="Desired package state"),
    ] = None
    apt: AptBlock | None = None
    deb: DebBlock | None = None
    googet: GooGetBlock | None = None
    msi: MSIBlock | None = None
    yum: YumBlock | None = None
    zypper: ZypperBlock | None = None
    rpm: RPMBlock | None = None

    def backend_blocks(self) -> list[tuple[Backend, BackendBlock]]:
        """Return every populated backend block.

        Returns:
            List of (backend, block) pairs in declaration order.
        """
        blocks: list[tuple[Backend, BackendBlock | None]] = [
            (Backend.APT, self.apt),
            (Backend.DEB, self.deb),
            (Backend.GOOGET, self.googet),
            (Backend.MSI, self.msi),
            (Backend.YUM, self.yum),
            (Backend.ZYPPER, self.zypper),
            (Backend.RPM, self.rpm),
        ]
        return [(backend, block) for backend, block in blocks if block is not None]
