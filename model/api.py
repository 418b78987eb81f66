# model/api.py
from typing import Any, Dict, List, Literal, Optional
from pydantic import BaseModel, Field
from model.variable import VariableConfig
from util.enums import ExportNetwork


class UploadProjectResponse(BaseModel):
    projectId: str
    entryPoint: str
    previewUrl: str
    version: str
    variables: List[VariableConfig]
    decompressionFallbacks: List[str] = Field(default_factory=list)


class ReloadProjectResponse(BaseModel):
    projectId: str
    entryPoint: str
    previewUrl: str
    files: int


class VariablesResponse(BaseModel):
    projectId: str
    version: str
    variables: List[VariableConfig]
    values: Dict[str, str]


class LiveConfigRequest(BaseModel):
    values: Dict[str, Any] = Field(default_factory=dict)


class LiveConfigAccepted(BaseModel):
    ok: bool = True
    projectId: str
    values: Dict[str, str]


class ExportRequest(BaseModel):
    network: ExportNetwork
    values: Optional[Dict[str, Any]] = None
    projectName: Optional[str] = Field(default=None, max_length=120)


class StreamEvent(BaseModel):
    type: Literal["hello", "reload", "error", "done"]
    payload: dict
