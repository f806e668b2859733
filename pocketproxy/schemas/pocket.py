from __future__ import annotations

import json
from typing import Any, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class PocketRequest(BaseModel):
    # Pocket clients also send consumer_key, detailType, state, ...; those are ignored
    model_config = ConfigDict(extra="ignore")

    access_token: Optional[str] = Field(default=None, description="Backend API key; falls back to FALLBACK_TOKEN")


class Action(BaseModel):
    model_config = ConfigDict(extra="ignore")

    action: str
    item_id: str

    @field_validator("item_id", mode="before")
    def coerce_item_id(cls, v):
        # some clients send numeric ids
        if isinstance(v, int) and not isinstance(v, bool):
            return str(v)
        return v


class SendRequest(PocketRequest):
    actions: List[Action]

    @field_validator("actions", mode="before")
    def parse_json_actions(cls, v):
        # form-encoded bodies carry actions as a JSON string
        if isinstance(v, str):
            return json.loads(v)
        return v


class GetRequest(PocketRequest):
    pass


class TextRequest(PocketRequest):
    url: str = Field(min_length=1)


class SendResponse(BaseModel):
    action_results: List[Any] = []
