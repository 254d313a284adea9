"""Backend descriptor table.

Static per-backend metadata: which binary to invoke, the argument
templates for installing and removing, environment overrides, and how to
list and parse the installed packages of name-based backends.
"""

import logging
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field

from pkgstate.models.package import Backend

logger = logging.getLogger(__name__)

APT_GET = "/usr/bin/apt-get"
DPKG = "/usr/bin/dpkg"
DPKG_QUERY = "/usr/bin/dpkg-query"
GOOGET = "googet.exe"
MSIEXEC = "msiexec.exe"
RPM = "/usr/bin/rpm"
RPMQUERY = "/usr/bin/rpmquery"
YUM = "/usr/bin/yum"
ZYPPER = "/usr/bin/zypper"

# apt-get and dpkg prompt for configuration unless told otherwise
_DEBIAN_ENV: Mapping[str, str] = {"DEBIAN_FRONTEND": "noninteractive"}

_DPKG_QUERY_FORMAT = "${Package} ${Version} ${db:Status-Status}\\n"
_RPMQUERY_FORMAT = "%{NAME} %{ARCH} %{VERSION}-%{RELEASE}\\n"


@dataclass(frozen=True, slots=True)
class Command:
    """A fully built command ready for the command runner.

    Attributes:
        args: Command and arguments.
        env: Environment overrides for the command.
    """

    args: tuple[str, ...]
    env: Mapping[str, str] = field(default_factory=dict)

    def __str__(self) -> str:
        return " ".join(self.args)


@dataclass(frozen=True, slots=True)
class CommandTemplate:
    """Argument template that places a target between fixed tokens.

    Attributes:
        binary: Path of the executable.
        args: Tokens placed before the target.
        trailing: Tokens placed after the target.
        env: Environment overrides for the command.
    """

    binary: str
    args: tuple[str, ...] = ()
    trailing: tuple[str, ...] = ()
    env: Mapping[str, str] = field(default_factory=dict)

    def build(self, target: str, extra: tuple[str, ...] = ()) -> Command:
        """Build a command for a package name or artifact path.

        Args:
            target: Package name or artifact path.
            extra: Additional tokens appended at the end.

        Returns:
            The concrete command.
        """
        return Command(
            args=(self.binary, *self.args, target, *self.trailing, *extra),
            env=dict(self.env),
        )


def parse_dpkg_query(output: str) -> set[str]:
    """Parse ``dpkg-query`` output into installed package names.

    Each line is ``<name> <version> <status>``; only rows whose status is
    ``installed`` are kept (removed-but-configured packages are listed too).
    A ``:<arch>`` qualifier on the name is dropped.

    Args:
        output: Standard output of the list-installed command.

    Returns:
        Set of installed package names.
    """
    names: set[str] = set()
    for line in output.splitlines():
        parts = line.split()
        if len(parts) < 2:
            logger.debug("Skipping malformed dpkg-query line: %r", line[:100])
            continue
        if len(parts) >= 3 and parts[2] != "installed":
            continue
        name, _sep, _arch = parts[0].partition(":")
        names.add(name)
    return names


def parse_googet_installed(output: str) -> set[str]:
    """Parse ``googet installed`` output into installed package names.

    Output starts with an ``Installed Packages:`` header followed by
    ``<name>.<arch> <version>`` lines. Only the part of the first column
    before the first dot is kept.

    Args:
        output: Standard output of the list-installed command.

    Returns:
        Set of installed package names.
    """
    names: set[str] = set()
    for line in output.splitlines():
        stripped = line.strip()
        if not stripped or stripped.endswith(":"):
            continue
        parts = stripped.split()
        if len(parts) != 2:
            logger.debug("Skipping malformed googet line: %r", line[:100])
            continue
        name, sep, _arch = parts[0].partition(".")
        if not sep or not name:
            logger.debug("Skipping googet line without architecture: %r", line[:100])
            continue
        names.add(name)
    return names


def parse_rpmquery(output: str) -> set[str]:
    """Parse ``rpmquery`` output into installed package names.

    Args:
        output: Lines of ``<name> <arch> <version>-<release>``.

    Returns:
        Set of installed package names.
    """
    names: set[str] = set()
    for line in output.splitlines():
        parts = line.split()
        if len(parts) < 2:
            logger.debug("Skipping malformed rpmquery line: %r", line[:100])
            continue
        names.add(parts[0])
    return names


@dataclass(frozen=True, slots=True)
class BackendSpec:
    """Descriptor for one backend.

    Attributes:
        backend: The backend described.
        install: Template used to install a package.
        remove: Template used to remove a package; None when removal by
            name is not supported.
        install_with_deps: Template used for source artifacts when
            dependencies must be resolved.
        list_installed: Command listing installed packages; None for
            source-based backends.
        parse_installed: Parser for the output of ``list_installed``.
    """

    backend: Backend
    install: CommandTemplate
    remove: CommandTemplate | None = None
    install_with_deps: CommandTemplate | None = None
    list_installed: Command | None = None
    parse_installed: Callable[[str], set[str]] | None = None

    @property
    def supports_removal(self) -> bool:
        """Check if packages of this backend can be removed by name."""
        return self.remove is not None


BACKENDS: dict[Backend, BackendSpec] = {
    Backend.APT: BackendSpec(
        backend=Backend.APT,
        install=CommandTemplate(APT_GET, ("install", "-y"), env=_DEBIAN_ENV),
        remove=CommandTemplate(APT_GET, ("remove", "-y"), env=_DEBIAN_ENV),
        list_installed=Command((DPKG_QUERY, "-W", "-f", _DPKG_QUERY_FORMAT)),
        parse_installed=parse_dpkg_query,
    ),
    Backend.GOOGET: BackendSpec(
        backend=Backend.GOOGET,
        install=CommandTemplate(GOOGET, ("-noconfirm", "install")),
        remove=CommandTemplate(GOOGET, ("-noconfirm", "remove")),
        list_installed=Command((GOOGET, "installed")),
        parse_installed=parse_googet_installed,
    ),
    Backend.YUM: BackendSpec(
        backend=Backend.YUM,
        install=CommandTemplate(YUM, ("install", "--assumeyes")),
        remove=CommandTemplate(YUM, ("remove", "--assumeyes")),
        list_installed=Command((RPMQUERY, "--queryformat", _RPMQUERY_FORMAT, "-a")),
        parse_installed=parse_rpmquery,
    ),
    Backend.ZYPPER: BackendSpec(
        backend=Backend.ZYPPER,
        install=CommandTemplate(
            ZYPPER,
            (
                "--gpg-auto-import-keys",
                "--non-interactive",
                "install",
                "--auto-agree-with-licenses",
            ),
        ),
        remove=CommandTemplate(ZYPPER, ("--non-interactive", "remove")),
        list_installed=Command((RPMQUERY, "--queryformat", _RPMQUERY_FORMAT, "-a")),
        parse_installed=parse_rpmquery,
    ),
    Backend.DEB: BackendSpec(
        backend=Backend.DEB,
        install=CommandTemplate(DPKG, ("--install",), env=_DEBIAN_ENV),
        install_with_deps=CommandTemplate(APT_GET, ("install", "-y"), env=_DEBIAN_ENV),
    ),
    Backend.MSI: BackendSpec(
        backend=Backend.MSI,
        install=CommandTemplate(MSIEXEC, ("/i",), trailing=("/qn", "/norestart")),
    ),
    Backend.RPM: BackendSpec(
        backend=Backend.RPM,
        install=CommandTemplate(RPM, ("--upgrade", "--replacepkgs", "-v")),
        install_with_deps=CommandTemplate(YUM, ("install", "--assumeyes")),
    ),
}


def get_backend_spec(backend: Backend) -> BackendSpec:
    """Look up the descriptor of a backend.

    Args:
        backend: The backend to look up.

    Returns:
        The backend descriptor.
    """
    return BACKENDS[backend]
