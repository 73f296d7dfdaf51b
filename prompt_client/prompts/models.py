"""Prompt version value objects."""

from __future__ import annotations

from collections.abc import Mapping
from datetime import datetime
from enum import StrEnum
from typing import Any

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, model_validator

from prompt_client.prompts.renderer import extract_variables, render

PRODUCTION_LABEL = "production"
LATEST_LABEL = "latest"


class PromptStatus(StrEnum):
    DRAFT = "draft"
    PUBLISHED = "published"
    ARCHIVED = "archived"


class PromptType(StrEnum):
    TEXT = "text"
    CHAT = "chat"


class PromptVersion(BaseModel):
    """One immutable revision of a prompt as returned by the service.

    ``variables`` is always derived from ``content``; whatever list the
    service sends is ignored.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")

    id: str
    prompt_id: str = Field(validation_alias=AliasChoices("prompt_id", "promptId"))
    version: int = Field(ge=1)
    content: str
    variables: tuple[str, ...] = ()
    status: PromptStatus = PromptStatus.PUBLISHED
    is_production: bool = Field(
        default=False, validation_alias=AliasChoices("is_production", "isProduction")
    )
    type: PromptType = PromptType.TEXT
    metadata: dict[str, Any] = Field(default_factory=dict)
    created_at: datetime = Field(validation_alias=AliasChoices("created_at", "createdAt"))
    updated_at: datetime = Field(validation_alias=AliasChoices("updated_at", "updatedAt"))

    @model_validator(mode="before")
    @classmethod
    def derive_variables(cls, data: Any) -> Any:
        if isinstance(data, Mapping) and isinstance(data.get("content"), str):
            return {**data, "variables": extract_variables(data["content"])}
        return data

    def render(self, variables: Mapping[str, Any]) -> str:
        return render(self.content, self.variables, variables)

    def get_metadata(self, key: str, default: Any = None) -> Any:
        return self.metadata.get(key, default)
