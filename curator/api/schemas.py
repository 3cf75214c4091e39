"""
Request and response models for the variables API, plus the curator/user
records owned by the identity subsystem.
"""

from pydantic import BaseModel, Field, field_validator, model_validator
from typing import Optional, List, Dict, Any, Literal

from ..core.schema import Option, Violation

CuratorStatus = Literal["unverified", "verified", "declined", "suspicious", "blocked"]


class OptionCreateRequest(BaseModel):
    label: str
    parent_id: Optional[str] = None
    extra: Dict[str, Any] = Field(default_factory=dict)
    revision: Optional[int] = None

    @field_validator('label')
    @classmethod
    def label_must_not_be_empty(cls, v):
        if not v.strip():
            raise ValueError('label cannot be empty')
        return v


class OptionUpdateRequest(BaseModel):
    label: Optional[str] = None
    parent_id: Optional[str] = None
    extra: Optional[Dict[str, Any]] = None
    revision: Optional[int] = None

    @field_validator('label')
    @classmethod
    def label_must_not_be_empty(cls, v):
        if v is not None and not v.strip():
            raise ValueError('label cannot be empty')
        return v

    def to_patch(self) -> Dict[str, Any]:
        """Only the fields the caller actually sent."""
        return {name: getattr(self, name) for name in ("label", "parent_id", "extra")
                if name in self.model_fields_set}


class OptionResponse(BaseModel):
    id: str
    category: str
    label: str
    parent_id: Optional[str] = None
    extra: Dict[str, Any] = Field(default_factory=dict)

    @classmethod
    def from_option(cls, option: Option) -> "OptionResponse":
        return cls(**option.to_dict())


class OptionListResponse(BaseModel):
    category: str
    revision: int
    options: List[OptionResponse]


class ViolationModel(BaseModel):
    code: str
    category: str
    option_id: Optional[str] = None
    message: str
    severity: str

    @classmethod
    def from_violation(cls, violation: Violation) -> "ViolationModel":
        return cls(**violation.to_dict())


class MutationResponse(BaseModel):
    success: bool
    revision: int
    option: Optional[OptionResponse] = None
    removed: List[OptionResponse] = Field(default_factory=list)


class CountsResponse(BaseModel):
    counts: Dict[str, int]


class PrimaryGenresResponse(BaseModel):
    genres: List[str]


class ImportResponse(BaseModel):
    success: bool
    message: str
    revision: int
    counts: Dict[str, int]
    violations: List[ViolationModel] = Field(default_factory=list)


class SelectionCheckRequest(BaseModel):
    selections: Dict[str, List[str]]


class SelectionCheckResponse(BaseModel):
    valid: bool
    violations: List[ViolationModel]


class ErrorResponse(BaseModel):
    error: str
    message: str
    hint: str = ""
    violations: List[ViolationModel] = Field(default_factory=list)


class HealthResponse(BaseModel):
    status: str
    version: str
    db_health: bool
    revision: int
    config_issues: List[str] = Field(default_factory=list)


# Identity records (read-only from the taxonomy side)
class Curator(BaseModel):
    id: str
    name: str
    email: str
    curator_nick: str
    phone_number: str = ""
    status: CuratorStatus = "unverified"
    credits: int = Field(default=0, ge=0)
    accepted: int = Field(default=0, ge=0)
    declined: int = Field(default=0, ge=0)
    curator_score: float = Field(default=0, ge=0)  # Computed by the curator subsystem
    playlists: List[str] = Field(default_factory=list)
    created_at: int
    updated_at: int

    @model_validator(mode='after')
    def updated_not_before_created(self):
        if self.updated_at < self.created_at:
            raise ValueError('updated_at cannot be earlier than created_at')
        return self


class User(BaseModel):
    id: str
    name: str
    email: str
    role: str
    curator_nick: Optional[str] = None
    phone_number: Optional[str] = None
    status: Optional[CuratorStatus] = None
    credits: Optional[int] = Field(default=None, ge=0)
    accepted: Optional[int] = Field(default=None, ge=0)
    declined: Optional[int] = Field(default=None, ge=0)
    curator_score: Optional[float] = Field(default=None, ge=0)
    created_at: int
    updated_at: int

    @model_validator(mode='after')
    def updated_not_before_created(self):
        if self.updated_at < self.created_at:
            raise ValueError('updated_at cannot be earlier than created_at')
        return self

    @property
    def is_curator(self) -> bool:
        return self.curator_nick is not None or self.status is not None
