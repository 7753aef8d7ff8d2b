"""
Configuration schemas for cryptenv.

This module defines Pydantic models for the parsed configuration file
(``~/.config/cryptenv.toml``) and for the resolved variable mappings built from it:
- Project configuration (``[project.<name>]`` tables and ``[project]`` shorthands)
- The whole configuration, with profile/project lookup and merge resolution
- Resolved environments (variable name -> secret key, before decryption)
"""

import re
from pathlib import Path
from typing import Annotated, Any, Literal

from pydantic import AfterValidator, BaseModel, ConfigDict, Field, field_validator, model_validator

from cryptenv.any.exceptions import UnknownProfileError

_VARIABLE_NAME = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")


def _check_variable_names(mapping: dict[str, str]) -> dict[str, str]:
    for name in mapping:
        if not _VARIABLE_NAME.match(name):
            raise ValueError(f"'{name}' is not a valid environment variable name")
    return mapping


# Variable name -> secret key
VariableMapping = Annotated[dict[str, str], AfterValidator(_check_variable_names)]


class ProjectConfig(BaseModel):
    """
    Configuration for one project (``[project.<name>]``).

    Example:
    -------
        [project.api]
        profiles = ["aws", "openai"]
        vars = { DATABASE_URL = "api_database_url" }

    """

    profiles: Annotated[list[str], Field(default_factory=list, description="Profiles to merge, in priority order")]
    vars: Annotated[
        VariableMapping,
        Field(default_factory=dict, description="Project-specific overrides (variable name -> secret key)"),
    ]

    model_config = ConfigDict(extra="forbid")


class ResolvedEnvironment(BaseModel):
    """
    Ordered variable name -> secret key mapping for a project or profile.

    Values are secret keys, not plaintext; ``compose`` looks them up in the store.
    """

    name: str
    source: Literal["project", "profile"]
    variables: Annotated[VariableMapping, Field(default_factory=dict)]

    def items(self) -> list[tuple[str, str]]:
        """Get (variable name, secret key) pairs in resolution order."""
        return list(self.variables.items())

    def names(self) -> list[str]:
        """Get variable names in resolution order."""
        return list(self.variables)

    def __len__(self) -> int:
        return len(self.variables)


class CryptenvConfig(BaseModel):
    """
    The parsed configuration file.

    Example:
    -------
        dirs = ["~/code"]

        [profile.aws]
        AWS_ACCESS_KEY_ID = "aws_key"
        AWS_SECRET_ACCESS_KEY = "aws_secret"

        [project.api]
        profiles = ["aws"]
        vars = { DATABASE_URL = "api_database_url" }

        [project]
        web = ["aws"]

    Every profile referenced by a project must exist; otherwise construction raises
    UnknownProfileError.
    """

    dirs: Annotated[list[Path], Field(default_factory=list, description="Watched root directories")]
    profile: Annotated[
        dict[str, VariableMapping],
        Field(default_factory=dict, description="Profiles (profile name -> variable mapping)"),
    ]
    project: Annotated[
        dict[str, ProjectConfig],
        Field(default_factory=dict, description="Projects (directory name -> project configuration)"),
    ]

    model_config = ConfigDict(extra="forbid")

    @field_validator("dirs", mode="after")
    @classmethod
    def expand_dirs(cls, value: list[Path]) -> list[Path]:
        """Expand ``~`` in watched directories."""
        return [d.expanduser() for d in value]

    @field_validator("project", mode="before")
    @classmethod
    def expand_project_shorthand(cls, value: Any) -> Any:
        """Turn ``name = ["profile", ...]`` shorthands into full project tables."""
        if not isinstance(value, dict):
            return value
        return {name: {"profiles": entry} if isinstance(entry, list) else entry for name, entry in value.items()}

    @model_validator(mode="after")
    def validate_profile_references(self) -> "CryptenvConfig":
        """Validate that every profile referenced by a project exists."""
        for project_name, project in self.project.items():
            for profile_name in project.profiles:
                if profile_name not in self.profile:
                    raise UnknownProfileError(project_name, profile_name)
        return self

    # --- Resolution ---

    def resolve_project(self, name: str) -> ResolvedEnvironment | None:
        """
        Resolve a project's variables.

        Profiles are merged in declared order (later profiles win on collisions), then the
        project's own ``vars`` are applied last and always win.

        Args:
        ----
            name: Project name

        Returns:
        -------
            ResolvedEnvironment, or None if the project is not configured

        Example:
        -------
            >>> config.resolve_project("api").variables
            {'AWS_ACCESS_KEY_ID': 'aws_key', 'DATABASE_URL': 'api_database_url'}

        """
        project = self.project.get(name)
        if project is None:
            return None

        variables: VariableMapping = {}
        for profile_name in project.profiles:
            variables.update(self.profile[profile_name])
        variables.update(project.vars)

        return ResolvedEnvironment(name=name, source="project", variables=variables)

    def resolve_profile(self, name: str) -> ResolvedEnvironment | None:
        """Resolve a single profile's variables, or None if it does not exist."""
        profile = self.profile.get(name)
        if profile is None:
            return None
        return ResolvedEnvironment(name=name, source="profile", variables=dict(profile))

    # --- Introspection ---

    def list_profiles(self) -> list[str]:
        """Get profile names, sorted."""
        return sorted(self.profile)

    def profile_vars(self, name: str) -> VariableMapping:
        """
        Get a profile's variable mapping.

        Returns an empty mapping for unknown profiles; use ``resolve_profile`` to tell
        the two cases apart.
        """
        return dict(self.profile.get(name, {}))

    def list_projects(self) -> list[str]:
        """Get project names, sorted."""
        return sorted(self.project)

    def managed_variable_names(self) -> set[str]:
        """Get every variable name any project can set."""
        names: set[str] = set()
        for project_name in self.project:
            resolved = self.resolve_project(project_name)
            if resolved is not None:
                names.update(resolved.variables)
        return names

    def referenced_secret_keys(self) -> dict[str, set[str]]:
        """
        Get every secret key referenced by a profile or project.

        Returns
        -------
            Mapping of secret key -> set of owners (``profile.<name>`` / ``project.<name>``)

        """
        references: dict[str, set[str]] = {}
        for profile_name, mapping in self.profile.items():
            for secret_key in mapping.values():
                references.setdefault(secret_key, set()).add(f"profile.{profile_name}")
        for project_name, project in self.project.items():
            for secret_key in project.vars.values():
                references.setdefault(secret_key, set()).add(f"project.{project_name}")
        return references
