"""Data models for discovered site actions.

Actions are MACHINE-GENERATED by the exploration agent. The catalog is the only
artifact handed to the generator, and it is validated as a whole: a single bad
action rejects the catalog.
"""

import re
from dataclasses import dataclass
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel

ParameterType = Literal["string", "number", "boolean"]

PLACEHOLDER_PATTERN = re.compile(r"\{([^{}]+)\}")
ACTION_NAME_PATTERN = r"^[A-Za-z_][A-Za-z0-9_]*$"


def extract_placeholders(text: str) -> list[str]:
    """Names referenced as ``{name}`` in a step template."""
    return [name.strip() for name in PLACEHOLDER_PATTERN.findall(text)]


class ActionParameter(BaseModel):
    """An input the action needs from the caller."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    name: str = Field(min_length=1)
    type: ParameterType
    description: str
    required: bool | None = None

    @property
    def is_required(self) -> bool:
        return bool(self.required)


class ActionDescriptor(BaseModel):
    """A discovered, automatable site capability."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    name: str = Field(pattern=ACTION_NAME_PATTERN)
    description: str
    parameters: list[ActionParameter] = Field(default_factory=list)
    steps: list[str]
    # Opaque to the pipeline; passed through to the generator as-is
    extraction_schema: dict[str, Any] | None = None

    @field_validator("parameters", mode="before")
    @classmethod
    def _null_parameters(cls, value: Any) -> Any:
        return [] if value is None else value

    @property
    def parameter_names(self) -> list[str]:
        return [p.name for p in self.parameters]

    def undeclared_placeholders(self) -> list[str]:
        """Placeholders used in steps that do not name a declared parameter, in order of appearance."""
        declared = set(self.parameter_names)
        missing: list[str] = []
        for step in self.steps:
            for name in extract_placeholders(step):
                if name not in declared and name not in missing:
                    missing.append(name)
        return missing


class ActionCatalog(BaseModel):
    """All actions discovered in one exploration pass."""

    model_config = ConfigDict(frozen=True)

    actions: list[ActionDescriptor]

    @model_validator(mode="after")
    def _unique_names(self) -> "ActionCatalog":
        seen: set[str] = set()
        for action in self.actions:
            if action.name in seen:
                raise ValueError(f"Duplicate action name: {action.name}")
            seen.add(action.name)
        return self

    def get(self, name: str) -> ActionDescriptor | None:
        return next((a for a in self.actions if a.name == name), None)

    def placeholder_issues(self) -> list["PlaceholderIssue"]:
        """Data-quality report: step placeholders without a matching parameter."""
        return [PlaceholderIssue(action=a.name, placeholders=missing) for a in self.actions if (missing := a.undeclared_placeholders())]

    def to_data(self) -> dict[str, Any]:
        """Plain structured data for the generator (camelCase keys, order preserved)."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


@dataclass(frozen=True)
class PlaceholderIssue:
    """An action whose steps reference undeclared parameters."""

    action: str
    placeholders: list[str]

    def __str__(self) -> str:
        names = ", ".join(f"{{{p}}}" for p in self.placeholders)
        return f"{self.action}: steps reference undeclared parameter(s) {names}"
