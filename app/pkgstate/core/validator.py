"""Resource validation.

Converts a raw package resource descriptor into exactly one managed
package, or raises :class:`ResourceValidationError`.
"""

import logging
import os
import re
from pathlib import Path
from urllib.parse import urlparse

from pkgstate.core.errors import ResourceValidationError
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
    BackendBlock,
    DebBlock,
    GooGetBlock,
    MSIBlock,
    PackageResourceSpec,
    RPMBlock,
    SourceFile,
    YumBlock,
    ZypperBlock,
)

logger = logging.getLogger(__name__)

# msiexec public property assignment: PROPERTY=value
_MSI_PROPERTY_RE = re.compile(r"^[A-Za-z_][\w.]*=")

_NAMED_PACKAGES = {
    Backend.APT: AptPackage,
    Backend.GOOGET: GooGetPackage,
    Backend.YUM: YumPackage,
    Backend.ZYPPER: ZypperPackage,
}


def validate_package_resource(spec: PackageResourceSpec) -> ManagedPackage:
    """Validate a package resource and build its managed package.

    Args:
        spec: The package resource descriptor.

    Returns:
        The managed package described by the resource.

    Raises:
        ResourceValidationError: If the descriptor does not select exactly
            one backend, requests a state the backend cannot reach, or
            references a missing artifact.
    """
    blocks = spec.backend_blocks()
    if not blocks:
        msg = "Package resource does not specify a package manager"
        raise ResourceValidationError(msg)
    if len(blocks) > 1:
        names = ", ".join(backend.value for backend, _ in blocks)
        msg = f"Package resource specifies more than one package manager: {names}"
        raise ResourceValidationError(msg)

    backend, block = blocks[0]
    if spec.desired_state is None:
        msg = f"{backend.value}: desired_state must be set"
        raise ResourceValidationError(msg)

    if backend.is_source_based:
        return _validate_source_package(backend, block, spec.desired_state)
    return _validate_named_package(backend, block, spec.desired_state)


def _validate_named_package(
    backend: Backend,
    block: BackendBlock,
    desired_state: DesiredState,
) -> ManagedPackage:
    """Build a name-based managed package."""
    if not isinstance(block, AptBlock | GooGetBlock | YumBlock | ZypperBlock):
        msg = f"{backend.value}: unexpected block {type(block).__name__}"
        raise ResourceValidationError(msg)
    name = block.name
    if not name:
        msg = f"{backend.value}: package name cannot be empty"
        raise ResourceValidationError(msg)
    if any(c.isspace() for c in name):
        msg = f"{backend.value}: package name {name!r} must not contain whitespace"
        raise ResourceValidationError(msg)
    if name.startswith("-"):
        msg = f"{backend.value}: package name {name!r} must not start with '-'"
        raise ResourceValidationError(msg)
    return _NAMED_PACKAGES[backend](desired_state=desired_state, name=name)


def _validate_source_package(
    backend: Backend,
    block: BackendBlock,
    desired_state: DesiredState,
) -> ManagedPackage:
    """Build a source-based managed package.

    Source-based packages are identified only by the artifact used to
    install them, so they cannot be removed.
    """
    if desired_state != DesiredState.INSTALLED:
        msg = (
            f"{backend.value}: desired_state {desired_state.value!r} is not supported, "
            f"only {DesiredState.INSTALLED.value!r} is"
        )
        raise ResourceValidationError(msg)

    if not isinstance(block, DebBlock | MSIBlock | RPMBlock):
        msg = f"{backend.value}: unexpected block {type(block).__name__}"
        raise ResourceValidationError(msg)
    if block.source is None:
        msg = f"{backend.value}: source must be set"
        raise ResourceValidationError(msg)
    source = validate_source_file(backend, block.source)

    if isinstance(block, DebBlock):
        return DebPackage(source=source, pull_deps=block.pull_deps)
    if isinstance(block, RPMBlock):
        return RPMPackage(source=source, pull_deps=block.pull_deps)

    for prop in block.properties:
        if not _MSI_PROPERTY_RE.match(prop):
            msg = f"{backend.value}: property {prop!r} is not a KEY=VALUE assignment"
            raise ResourceValidationError(msg)
    return MSIPackage(source=source, properties=tuple(block.properties))


def validate_source_file(backend: Backend, source: SourceFile) -> SourceFile:
    """Check that an artifact location is usable.

    Local artifacts must exist and be readable. Remote artifacts must use
    HTTPS, or HTTP when ``allow_insecure`` is set; they are not fetched here.
    Local paths are made absolute so they are never read as options.

    Args:
        backend: Backend the artifact belongs to, for error messages.
        source: The artifact location.

    Returns:
        The source, with an absolute local path.

    Raises:
        ResourceValidationError: If the location is unusable.
    """
    if source.local_path is not None and source.remote is not None:
        msg = f"{backend.value}: source must set only one of local_path or remote"
        raise ResourceValidationError(msg)

    if source.local_path is not None:
        path = Path(source.local_path)
        if not path.is_file():
            msg = f"{backend.value}: source file not found: {path}"
            raise ResourceValidationError(msg)
        if not os.access(path, os.R_OK):
            msg = f"{backend.value}: source file is not readable: {path}"
            raise ResourceValidationError(msg)
        return source.model_copy(update={"local_path": str(path.absolute())})

    remote = source.remote
    if remote is None:
        msg = f"{backend.value}: source must set local_path or remote"
        raise ResourceValidationError(msg)

    scheme = urlparse(remote.uri).scheme.lower()
    if scheme == "http" and not source.allow_insecure:
        msg = f"{backend.value}: insecure URI {remote.uri!r} requires allow_insecure"
        raise ResourceValidationError(msg)
    if scheme not in ("http", "https"):
        msg = f"{backend.value}: unsupported URI scheme {scheme!r} in {remote.uri!r}"
        raise ResourceValidationError(msg)
    logger.debug("Accepted remote %s source %s", backend.value, remote.uri)
    return source
