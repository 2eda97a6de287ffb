"""Pydantic models for structured git query results"""

import json
from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field


class FileStatus(BaseModel):
    path: str
    index: str
    working_dir: str


class RenamedFile(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    from_path: str = Field(alias="from")
    to: str


class StatusSummary(BaseModel):
    """Working tree status, one bucket per kind of change."""

    model_config = ConfigDict(populate_by_name=True)

    current: Optional[str] = None
    tracking: Optional[str] = None
    ahead: int = 0
    behind: int = 0
    detached: bool = False
    not_added: List[str] = Field(default_factory=list)
    conflicted: List[str] = Field(default_factory=list)
    created: List[str] = Field(default_factory=list)
    deleted: List[str] = Field(default_factory=list)
    modified: List[str] = Field(default_factory=list)
    renamed: List[RenamedFile] = Field(default_factory=list)
    staged: List[str] = Field(default_factory=list)
    files: List[FileStatus] = Field(default_factory=list)

    @property
    def is_clean(self) -> bool:
        return not self.files

    def to_text(self) -> str:
        data = self.model_dump(mode="json", by_alias=True)
        data["is_clean"] = self.is_clean
        return _pretty(data)


class BranchInfo(BaseModel):
    current: bool
    name: str
    commit: str
    label: str


class BranchSummary(BaseModel):
    detached: bool = False
    current: str = ""
    all: List[str] = Field(default_factory=list)
    branches: Dict[str, BranchInfo] = Field(default_factory=dict)

    def to_text(self) -> str:
        return _pretty(self.model_dump(mode="json"))


def _pretty(data: dict) -> str:
    return json.dumps(data, indent=2, ensure_ascii=False)
