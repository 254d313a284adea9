"""Policy file loading.

A policy file is a TOML document with one ``[[resources]]`` table per
package resource::

    [[resources]]
    id = "curl-present"

    [resources.package]
    desired_state = "installed"
    apt = { name = "curl" }
"""

import tomllib
from pathlib import Path
from typing import Annotated

from pydantic import BaseModel, ConfigDict, Field, ValidationError, model_validator

from pkgstate.core.config import ConfigError, ConfigNotFoundError, ConfigParseError
from pkgstate.core.resource import PackageResource, ReconcileContext
from pkgstate.models.resource import PackageResourceSpec


class PolicyResource(BaseModel):
    """A single resource entry of a policy.

    Attributes:
        id: Identifier of the resource, unique within the policy.
        package: The package resource descriptor.
    """

    model_config = ConfigDict(extra="forbid")

    id: Annotated[str, Field(min_length=1, description="Resource identifier")]
    package: Annotated[PackageResourceSpec, Field(description="Package resource")]


class Policy(BaseModel):
    """A set of package resources applied together."""

    model_config = ConfigDict(extra="forbid")

    resources: Annotated[
        list[PolicyResource],
        Field(default_factory=list, description="Package resources"),
    ]

    @model_validator(mode="after")
    def validate_unique_ids(self) -> "Policy":
        """Validate that no resource id appears twice."""
        seen: set[str] = set()
        duplicates: set[str] = set()
        for resource in self.resources:
            if resource.id in seen:
                duplicates.add(resource.id)
            seen.add(resource.id)
        if duplicates:
            msg = f"Duplicate resource ids: {sorted(duplicates)}"
            raise ValueError(msg)
        return self

    def build_resources(self, context: ReconcileContext) -> list[PackageResource]:
        """Create unvalidated package resources sharing one context.

        Args:
            context: Shared reconciliation state.

        Returns:
            One PackageResource per policy entry, in file order.
        """
        return [
            PackageResource(entry.package, context, resource_id=entry.id)
            for entry in self.resources
        ]


class PolicyError(ConfigError):
    """Raised when a policy file cannot be loaded."""


def load_policy(path: Path) -> Policy:
    """Load and validate a policy from a TOML file.

    Args:
        path: Path to the policy file.

    Returns:
        Validated Policy object.

    Raises:
        ConfigNotFoundError: If the policy file doesn't exist.
        ConfigParseError: If the TOML syntax is invalid.
        PolicyError: If the content doesn't match the schema.
    """
    if not path.exists():
        raise ConfigNotFoundError(f"Policy not found: {path}")

    try:
        with open(path, "rb") as f:
            data = tomllib.load(f)
    except tomllib.TOMLDecodeError as e:
        raise ConfigParseError(f"Invalid TOML syntax: {e}") from e
    except OSError as e:
        raise PolicyError(f"Failed to read policy: {e}") from e

    try:
        return Policy.model_validate(data)
    except ValidationError as e:
        raise PolicyError(f"Invalid policy content: {e}") from e
