from typing import Any, Dict, List, Optional
from pydantic import BaseModel, ConfigDict, Field, TypeAdapter


class Entry(BaseModel):
    model_config = ConfigDict(populate_by_name=True, frozen=True)

    rank: int = Field(..., ge=0, description="1-based position within its category (0 if unparseable)")
    name: Optional[str] = None
    link: Optional[str] = None
    description: Optional[str] = None
    context: Optional[int] = Field(default=None, description="Token context size")
    tokens: int = Field(default=0, ge=0, description="Total token volume")
    token_change_percent: Optional[float] = Field(default=None, alias="tokenChangePercent")
    id: str = ""

    def to_json_dict(self) -> dict:
        return self.model_dump(by_alias=True)


# category -> entries, in rank order; entries are kept as plain JSON objects
SnapshotShape = TypeAdapter(Dict[str, List[Dict[str, Any]]])


class ScrapeResponse(BaseModel):
    status: str = "ok"
    updated: List[str]


class StatusResponse(BaseModel):
    status: str = "ok"
    latest_file: Optional[str] = None
    categories: List[str]
