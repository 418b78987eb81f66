# model/variable.py
import json
import logging
from enum import Enum
from typing import Any, Dict, List, Optional
from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

logger = logging.getLogger(__name__)


class VariableType(str, Enum):
    int = "int"
    float = "float"
    bool = "bool"
    enum = "enum"
    string = "string"
    vector3 = "vector3"
    color = "color"


def _as_wire_string(v: Any) -> str:
    # Manifest values are string-encoded; tolerate hand-written JSON
    if v is None:
        return ""
    if isinstance(v, bool):
        return "true" if v else "false"
    if isinstance(v, (dict, list)):
        return json.dumps(v, separators=(",", ":"))
    return str(v)


class VariableConfig(BaseModel):
    """One tweakable variable as declared by the build's manifest."""

    model_config = ConfigDict(extra="ignore", frozen=True)

    name: str = Field(min_length=1)
    type: VariableType
    value: str = ""
    min: Optional[float] = None
    max: Optional[float] = None
    step: Optional[float] = None
    options: Optional[List[str]] = None
    section: Optional[str] = None
    order: Optional[int] = None

    @field_validator("value", mode="before")
    @classmethod
    def _coerce_value(cls, v: Any) -> str:
        return _as_wire_string(v)


class Manifest(BaseModel):
    """homa_config.json as shipped inside the uploaded archive."""

    model_config = ConfigDict(extra="ignore", frozen=True)

    version: str = "1.0"
    variables: List[VariableConfig] = Field(default_factory=list)

    @field_validator("variables", mode="before")
    @classmethod
    def _drop_unknown_kinds(cls, v: Any) -> Any:
        # Build tooling also lists non-editable entries (e.g. "Asset:Sprite")
        if not isinstance(v, list):
            return v
        known = {t.value for t in VariableType}
        kept = []
        for item in v:
            if isinstance(item, dict) and item.get("type") not in known:
                logger.warning(
                    "manifest.variable.skipped name=%s type=%s",
                    item.get("name"),
                    item.get("type"),
                )
                continue
            kept.append(item)
        return kept

    @field_validator("version", mode="before")
    @classmethod
    def _coerce_version(cls, v: Any) -> str:
        return "1.0" if v is None else str(v)

    @model_validator(mode="after")
    def _unique_names(self) -> "Manifest":
        seen = set()
        for var in self.variables:
            if var.name in seen:
                raise ValueError(f"duplicate variable name: {var.name}")
            seen.add(var.name)
        return self

    def by_name(self) -> Dict[str, VariableConfig]:
        return {v.name: v for v in self.variables}

    def default_values(self) -> Dict[str, str]:
        return {v.name: v.value for v in self.variables}


class LiveVariable(BaseModel):
    name: str
    value: str

    @field_validator("value", mode="before")
    @classmethod
    def _coerce_value(cls, v: Any) -> str:
        return _as_wire_string(v)


class LiveConfig(BaseModel):
    """
    Store-resident snapshot injected into the entry document at serve time.
    Only name/value pairs flow back into the running preview.
    """

    variables: List[LiveVariable] = Field(default_factory=list)

    @classmethod
    def from_values(cls, values: Dict[str, str]) -> "LiveConfig":
        return cls(
            variables=[LiveVariable(name=k, value=v) for k, v in values.items()]
        )

    def as_values(self) -> Dict[str, str]:
        return {v.name: v.value for v in self.variables}
