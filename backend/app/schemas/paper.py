from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, Field, field_validator

from app.models.paper import DecisionValue, PaperStatus


def _clean_tags(values: Optional[list[str]]) -> Optional[list[str]]:
    # 中文注释: 去除空白项并保持原有顺序（关键词顺序对展示有意义）
    if values is None:
        return None
    out: list[str] = []
    for raw in values:
        item = str(raw or "").strip()
        if item:
            out.append(item)
    return out


class PaperSubmission(BaseModel):
    title: str = Field(..., min_length=1, max_length=500)
    abstract: str = Field(..., min_length=1, max_length=10000)
    keywords: list[str] = Field(default_factory=list)
    co_authors: Optional[list[str]] = None
    category: str = Field(..., min_length=1, max_length=200)
    file_id: Optional[str] = Field(None, max_length=1000, description="Supabase Storage 路径")
    file_name: Optional[str] = Field(None, max_length=255)

    @field_validator("title", "abstract", "category")
    @classmethod
    def strip_required(cls, value: str) -> str:
        trimmed = value.strip()
        if not trimmed:
            raise ValueError("field must not be blank")
        return trimmed

    @field_validator("keywords", "co_authors")
    @classmethod
    def clean_lists(cls, value):
        return _clean_tags(value)

    @field_validator("file_id", "file_name", mode="before")
    @classmethod
    def normalize_optional_strings(cls, value):
        if value is None:
            return None
        if isinstance(value, str):
            return value.strip() or None
        return value


class PaperStatusUpdate(BaseModel):
    status: PaperStatus
    editor_id: Optional[str] = None
    # 编辑显式 override：跳过状态表校验
    override: bool = False


class EditorialDecisionCreate(BaseModel):
    decision: DecisionValue
    comments: str = Field(..., min_length=1, max_length=20000)


class PaperRevisionCreate(BaseModel):
    file_id: str = Field(..., min_length=1, max_length=1000)
    file_name: str = Field(..., min_length=1, max_length=255)
    changes: Optional[str] = Field(None, max_length=5000)
