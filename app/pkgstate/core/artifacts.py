"""Package artifact retrieval.

Source-based packages reference the artifact to install either by local
path or by remote URI. Remote artifacts are downloaded into a caller
provided directory right before installation and verified against their
SHA-256 checksum when one is given.
"""

import hashlib
import logging
from pathlib import Path, PurePosixPath
from urllib.parse import urlparse

import requests

from pkgstate.core.errors import ArtifactError
from pkgstate.models.package import Backend
from pkgstate.models.resource import RemoteFile, SourceFile

logger = logging.getLogger(__name__)

_CHUNK_SIZE = 1024 * 1024


def resolve_artifact(
    backend: Backend,
    source: SourceFile,
    dest_dir: Path,
    timeout: float = 120.0,
) -> Path:
    """Return a local path for an artifact, downloading it if needed.

    Args:
        backend: Backend the artifact belongs to.
        source: The artifact location.
        dest_dir: Directory remote artifacts are downloaded into.
        timeout: Network timeout in seconds.

    Returns:
        Path of the artifact on this machine.

    Raises:
        ArtifactError: If the artifact cannot be retrieved or verified.
    """
    if source.local_path is not None:
        return Path(source.local_path)
    if source.remote is None:
        raise ArtifactError(backend, [], message="source has no location")
    return download_artifact(backend, source.remote, dest_dir, timeout)


def _artifact_filename(backend: Backend, uri: str) -> str:
    """Derive a file name for a downloaded artifact from its URI."""
    name = PurePosixPath(urlparse(uri).path).name
    return name or f"package.{backend.value}"


def download_artifact(
    backend: Backend,
    remote: RemoteFile,
    dest_dir: Path,
    timeout: float = 120.0,
) -> Path:
    """Download a remote artifact and verify its checksum.

    Args:
        backend: Backend the artifact belongs to.
        remote: Remote artifact location.
        dest_dir: Directory to download into.
        timeout: Network timeout in seconds.

    Returns:
        Path of the downloaded file.

    Raises:
        ArtifactError: On HTTP errors or checksum mismatch.
    """
    dest = dest_dir / _artifact_filename(backend, remote.uri)
    digest = hashlib.sha256()

    logger.info("Downloading %s artifact %s", backend.value, remote.uri)
    try:
        with requests.get(remote.uri, stream=True, timeout=timeout) as response:
            response.raise_for_status()
            with dest.open("wb") as f:
                for chunk in response.iter_content(chunk_size=_CHUNK_SIZE):
                    if chunk:
                        f.write(chunk)
                        digest.update(chunk)
    except requests.RequestException as e:
        raise ArtifactError(backend, [remote.uri], message=f"download failed: {e}") from e
    except OSError as e:
        raise ArtifactError(backend, [remote.uri], message=f"cannot write {dest}: {e}") from e

    if remote.sha256_checksum is not None:
        actual = digest.hexdigest()
        if actual.lower() != remote.sha256_checksum.strip().lower():
            dest.unlink(missing_ok=True)
            msg = (
                f"checksum mismatch for {remote.uri}: "
                f"expected {remote.sha256_checksum}, got {actual}"
            )
            raise ArtifactError(backend, [remote.uri], message=msg)

    return dest
