from typing import List, Literal, Optional

from pydantic import BaseModel, Field, field_validator

ProfileRole = Literal["author", "reviewer", "editor", "admin"]


class ProfileUpsert(BaseModel):
    first_name: str = Field(..., min_length=1, max_length=100)
    last_name: str = Field(..., min_length=1, max_length=100)
    affiliation: str = Field(..., min_length=1, max_length=200)
    expertise: List[str] = Field(default_factory=list)
    role: ProfileRole
    bio: Optional[str] = Field(None, max_length=2000)

    @field_validator("first_name", "last_name", "affiliation")
    @classmethod
    def strip_required(cls, v: str) -> str:
        stripped = v.strip()
        if not stripped:
            raise ValueError("field must not be blank")
        return stripped

    @field_validator("expertise")
    @classmethod
    def validate_expertise(cls, v):
        """
        去除空白标签并去重（保持顺序）。
        """
        out: list[str] = []
        for item in v or []:
            tag = str(item or "").strip()
            if not tag:
                continue
            if len(tag) > 100:
                raise ValueError("Expertise tag must be less than 100 characters")
            if tag not in out:
                out.append(tag)
        return out

    @field_validator("bio", mode="before")
    @classmethod
    def normalize_bio(cls, v):
        if v is None:
            return None
        if isinstance(v, str):
            return v.strip() or None
        return v


class CategoryCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=200)
    description: str = Field(..., max_length=2000)
    editor_id: Optional[str] = None
