"""Attribute schema declarations shared by resources and data sources.

State models are pydantic models whose fields are declared with
:func:`attribute`. The field metadata (required / computed / sensitive /
requires-replace) is what the planning side consumes, so the exported
:class:`Schema` is derived from the model rather than written twice.
"""

import types
import typing
from dataclasses import asdict, dataclass
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.fields import FieldInfo


def attribute(
    default: Any = None,
    *,
    description: str,
    required: bool = False,
    computed: bool = False,
    sensitive: bool = False,
    requires_replace: bool = False,
) -> Any:
    """Declare a state attribute.

    Every attribute is nullable in Python so that partial (imported) state can
    be represented. ``required`` is enforced when a plan is validated.
    """
    return Field(
        default=default,
        description=description,
        json_schema_extra={
            "required": required,
            "computed": computed,
            "sensitive": sensitive,
            "requires_replace": requires_replace,
        },
    )


class StateModel(BaseModel):
    """Base class for resource and data-source state."""

    model_config = ConfigDict(extra="forbid")


@dataclass(frozen=True, slots=True)
class Attribute:
    """One attribute as exposed to the planning engine."""

    name: str
    type: str
    description: str = ""
    required: bool = False
    optional: bool = False
    computed: bool = False
    sensitive: bool = False
    requires_replace: bool = False
    default: Any = None

    def to_dict(self) -> dict[str, Any]:
        """Convert to a plain dictionary."""
        return asdict(self)


def _type_name(annotation: Any) -> str:
    """Map a Python annotation onto the schema's type vocabulary."""
    origin = typing.get_origin(annotation)
    args = [a for a in typing.get_args(annotation) if a is not type(None)]

    if origin in (typing.Union, types.UnionType) and len(args) == 1:
        return _type_name(args[0])
    if origin is list:
        return f"list({_type_name(args[0])})" if args else "list(string)"
    if origin is dict:
        return f"map({_type_name(args[-1])})" if args else "map(string)"
    if annotation is bool:
        return "bool"
    if annotation in (int, float):
        return "number"
    if isinstance(annotation, type) and issubclass(annotation, BaseModel):
        fields = ", ".join(
            f"{name}={_type_name(info.annotation)}"
            for name, info in annotation.model_fields.items()
        )
        return f"object({fields})"
    return "string"


def _attribute_from_field(name: str, info: FieldInfo) -> Attribute:
    extra = info.json_schema_extra if isinstance(info.json_schema_extra, dict) else {}
    required = bool(extra.get("required"))
    computed = bool(extra.get("computed"))
    default = info.get_default(call_default_factory=True)
    return Attribute(
        name=name,
        type=_type_name(info.annotation),
        description=info.description or "",
        required=required,
        # Optional+Computed attributes (server defaults) are still user settable
        optional=not required and (not computed or default is not None),
        computed=computed,
        sensitive=bool(extra.get("sensitive")),
        requires_replace=bool(extra.get("requires_replace")),
        default=default,
    )


@dataclass(frozen=True, slots=True)
class Schema:
    """Attribute schema of one resource or data source."""

    attributes: tuple[Attribute, ...]
    description: str = ""

    @classmethod
    def from_model(cls, model: type[BaseModel], description: str = "") -> "Schema":
        """Derive the schema from a state model's field declarations."""
        return cls(
            attributes=tuple(
                _attribute_from_field(name, info)
                for name, info in model.model_fields.items()
            ),
            description=description,
        )

    def get(self, name: str) -> Optional[Attribute]:
        """Look up an attribute by name."""
        for attr in self.attributes:
            if attr.name == name:
                return attr
        return None

    @property
    def required(self) -> tuple[str, ...]:
        return tuple(a.name for a in self.attributes if a.required)

    @property
    def computed(self) -> tuple[str, ...]:
        return tuple(a.name for a in self.attributes if a.computed)

    @property
    def sensitive(self) -> tuple[str, ...]:
        return tuple(a.name for a in self.attributes if a.sensitive)

    @property
    def requires_replace(self) -> tuple[str, ...]:
        return tuple(a.name for a in self.attributes if a.requires_replace)

    def to_dict(self) -> dict[str, Any]:
        """Convert to a plain dictionary keyed by attribute name."""
        return {
            "description": self.description,
            "attributes": {a.name: a.to_dict() for a in self.attributes},
        }
