# src/needle/core/config.py
"""
Configuration schema and loading for declarative pipeline descriptions.

Uses Pydantic for validation and Dynaconf for multi-source loading.
Settings are frozen (immutable) after construction.

Example YAML:
    version: "1"
    components:
      - name: Store
        type: MyDocumentStore
      - name: Retriever
        type: Retriever
        params:
          document_store: Store
          top_k: 5
    pipelines:
      - name: query
        nodes:
          - name: Retriever
            inputs: [Query]
"""

import re
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field, field_validator, model_validator

from needle.contracts.enums import RootType

CONFIG_VERSION = "1"

_RESERVED_NAMES = frozenset(r.value for r in RootType)


class ComponentSettings(BaseModel):
    """One named component instance.

    String params equal to another component's name are resolved to that
    instance when the pipeline is built.
    """

    model_config = {"frozen": True}

    name: str = Field(description="Component identifier (unique within the file)")
    type: str = Field(description="Registered component type to instantiate")
    params: dict[str, Any] = Field(
        default_factory=dict,
        description="Constructor arguments",
    )

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("component name must not be empty")
        if v in _RESERVED_NAMES:
            raise ValueError(f"'{v}' is reserved for pipeline roots")
        if "." in v:
            raise ValueError(f"component name '{v}' must not contain '.' (used in input references)")
        return v


class PipelineNodeSettings(BaseModel):
    """A node in a named pipeline: which component, fed by which inputs."""

    model_config = {"frozen": True}

    name: str = Field(description="Name of a component declared under 'components'")
    inputs: list[str] = Field(min_length=1, description="Input references, e.g. 'Query' or 'Classifier.output_2'")


class PipelineSettings(BaseModel):
    """A named pipeline: ordered node list with input references."""

    model_config = {"frozen": True}

    name: str
    nodes: list[PipelineNodeSettings] = Field(min_length=1)

    @model_validator(mode="after")
    def validate_unique_nodes(self) -> "PipelineSettings":
        seen: set[str] = set()
        for node in self.nodes:
            if node.name in seen:
                raise ValueError(f"pipeline '{self.name}' lists node '{node.name}' more than once")
            seen.add(node.name)
        return self


class NeedleSettings(BaseModel):
    """Top-level declarative description: components plus named pipelines.

    All settings are validated and frozen after construction.
    """

    model_config = {"frozen": True}

    version: str = Field(default=CONFIG_VERSION, description="Description format version")
    components: list[ComponentSettings] = Field(default_factory=list)
    pipelines: list[PipelineSettings] = Field(min_length=1)

    @field_validator("version", mode="before")
    @classmethod
    def validate_version(cls, v: Any) -> str:
        version = str(v)
        if version != CONFIG_VERSION:
            raise ValueError(f"unsupported config version '{version}', expected '{CONFIG_VERSION}'")
        return version

    @model_validator(mode="after")
    def validate_references(self) -> "NeedleSettings":
        names = [c.name for c in self.components]
        duplicates = sorted({n for n in names if names.count(n) > 1})
        if duplicates:
            raise ValueError(f"duplicate component names: {duplicates}")

        pipeline_names = [p.name for p in self.pipelines]
        if len(set(pipeline_names)) != len(pipeline_names):
            raise ValueError(f"duplicate pipeline names in {pipeline_names}")

        known = set(names)
        for pipeline in self.pipelines:
            for node in pipeline.nodes:
                if node.name not in known:
                    raise ValueError(f"pipeline '{pipeline.name}' uses undeclared component '{node.name}'")
        return self

    def get_component(self, name: str) -> ComponentSettings:
        """Look up a component by name.

        Raises:
            KeyError: If no component has that name
        """
        for component in self.components:
            if component.name == name:
                return component
        raise KeyError(name)

    def get_pipeline(self, name: str | None = None) -> PipelineSettings:
        """Select a pipeline by name; without a name there must be exactly one.

        Raises:
            KeyError: If the name is unknown
            ValueError: If no name is given and several pipelines exist
        """
        if name is None:
            if len(self.pipelines) > 1:
                raise ValueError(f"several pipelines defined ({', '.join(p.name for p in self.pipelines)}); pass a pipeline name")
            return self.pipelines[0]
        for pipeline in self.pipelines:
            if pipeline.name == name:
                return pipeline
        raise KeyError(name)


# Regex pattern for ${VAR} or ${VAR:-default} syntax
_ENV_VAR_PATTERN = re.compile(r"\$\{([A-Z_][A-Z0-9_]*)(?::-([^}]*))?\}")


def _expand_env_vars(config: dict[str, Any]) -> dict[str, Any]:
    """Recursively expand ${VAR} and ${VAR:-default} patterns in config values.

    Args:
        config: Configuration dict (may contain nested structures)

    Returns:
        New dict with environment variables expanded
    """
    import os

    def _expand_string(value: str) -> str:
        def replacer(match: re.Match[str]) -> str:
            var_name = match.group(1)
            default = match.group(2)
            env_value = os.environ.get(var_name)
            if env_value is not None:
                return env_value
            if default is not None:
                return default
            # No env var and no default - keep original (will likely cause error)
            return match.group(0)

        return _ENV_VAR_PATTERN.sub(replacer, value)

    def _expand_value(value: Any) -> Any:
        if isinstance(value, str):
            return _expand_string(value)
        elif isinstance(value, dict):
            return {k: _expand_value(v) for k, v in value.items()}
        elif isinstance(value, list):
            return [_expand_value(item) for item in value]
        else:
            return value

    return {k: _expand_value(v) for k, v in config.items()}


def load_settings(config_path: Path) -> NeedleSettings:
    """Load a pipeline description from YAML with environment overrides.

    Uses Dynaconf for multi-source loading with precedence:
    1. Environment variables (NEEDLE_*) - highest priority
    2. Config file
    3. Defaults from Pydantic schema - lowest priority

    Raises:
        ValidationError: If configuration fails Pydantic validation
        FileNotFoundError: If config file doesn't exist
    """
    from dynaconf import Dynaconf

    # Dynaconf silently accepts missing files
    if not config_path.exists():
        raise FileNotFoundError(f"Config file not found: {config_path}")

    dynaconf_settings = Dynaconf(
        envvar_prefix="NEEDLE",
        settings_files=[str(config_path)],
        environments=False,
        load_dotenv=False,
        merge_enabled=True,
    )

    # Dynaconf returns uppercase keys; filter its internal settings
    internal_keys = {"LOAD_DOTENV", "ENVIRONMENTS", "SETTINGS_FILES"}
    raw_config = {k.lower(): v for k, v in dynaconf_settings.as_dict().items() if k not in internal_keys}

    raw_config = _expand_env_vars(raw_config)

    return NeedleSettings(**raw_config)


def dump_settings(settings: NeedleSettings, path: Path) -> None:
    """Write settings as YAML in the format load_settings() reads."""
    data = settings.model_dump(mode="json")
    with path.open("w", encoding="utf-8") as f:
        yaml.safe_dump(data, f, sort_keys=False, default_flow_style=False)
