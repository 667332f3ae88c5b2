"""Schemas for allow/deny filter sets and check verdicts."""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import Any, List, Literal, Mapping, Optional, Tuple, Union

from pydantic import (
    AliasChoices,
    BaseModel,
    ConfigDict,
    Field,
    field_validator,
    model_validator,
)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


class DenyEntryKind(str, Enum):
    PERMANENT = "permanent"
    TEMPORARY = "temporary"


class DenyEntry(BaseModel):
    """A deny-list item, either permanent or valid until ``expires_at``."""

    model_config = ConfigDict(frozen=True)

    item: str
    kind: DenyEntryKind = DenyEntryKind.PERMANENT
    expires_at: Optional[datetime] = None

    @field_validator("expires_at")
    @classmethod
    def _normalize_expiry(cls, value: Optional[datetime]) -> Optional[datetime]:
        return _as_utc(value) if value is not None else None

    @model_validator(mode="after")
    def _check_kind(self) -> "DenyEntry":
        if self.kind is DenyEntryKind.TEMPORARY and self.expires_at is None:
            raise ValueError("temporary deny entries need an expiry")
        if self.kind is DenyEntryKind.PERMANENT and self.expires_at is not None:
            raise ValueError("permanent deny entries cannot expire")
        return self

    @classmethod
    def permanent(cls, item: str) -> "DenyEntry":
        return cls(item=item)

    @classmethod
    def temporary(cls, item: str, expires_at: datetime) -> "DenyEntry":
        return cls(item=item, kind=DenyEntryKind.TEMPORARY, expires_at=expires_at)

    @property
    def identity(self) -> str:
        """Trimmed text used to de-duplicate entries on insert and removal."""
        return self.item.strip()

    def is_expired(self, now: datetime) -> bool:
        return (
            self.kind is DenyEntryKind.TEMPORARY
            and self.expires_at is not None
            and now > self.expires_at
        )


class FilterSet(BaseModel):
    """One moderation scope: a permanent allow list and an expiring deny list."""

    model_config = ConfigDict(frozen=True)

    id: str
    deny_list: Tuple[DenyEntry, ...] = ()
    allow_list: Tuple[str, ...] = ()
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)
    is_active: bool = True


class CheckOptions(BaseModel):
    """How text is compared against list entries."""

    model_config = ConfigDict(frozen=True)

    case_sensitive: bool = False
    exact_match: bool = False
    partial_match: bool = True

    @classmethod
    def lenient(cls, raw: "CheckOptions | Mapping[str, Any] | None") -> "CheckOptions":
        """Build options, defaulting anything missing or not a real boolean."""
        if isinstance(raw, CheckOptions):
            return raw
        if not isinstance(raw, Mapping):
            return cls()
        values = {
            name: raw[name]
            for name in cls.model_fields
            if isinstance(raw.get(name), bool)
        }
        return cls(**values)


class CheckVerdict(BaseModel):
    """Allow/block decision with the entries that produced it."""

    is_allowed: bool
    is_blocked: bool
    matched_deny: List[DenyEntry] = Field(default_factory=list)
    matched_allow: List[str] = Field(default_factory=list)
    reason: Literal["whitelist", "blacklist", "none"] = "none"
    expiration_reason: Optional[str] = None


class FilterStats(BaseModel):
    total_filters: int
    active_filters: int
    inactive_filters: int
    total_deny_items: int
    total_allow_items: int


# ---------------------------------------------------------------------------
# On-disk layout
# ---------------------------------------------------------------------------


class StoredDenyItem(BaseModel):
    """Temporary deny entry as written to disk."""

    model_config = ConfigDict(populate_by_name=True)

    item: str
    expires_at: Optional[datetime] = Field(
        default=None,
        validation_alias=AliasChoices("expiresAt", "expires_at"),
        serialization_alias="expiresAt",
    )


class StoredFilterSet(BaseModel):
    """Filter set as written to disk; timestamps travel as ISO-8601 strings."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    id: str
    deny_list: List[Union[str, StoredDenyItem]] = Field(
        default_factory=list,
        validation_alias=AliasChoices("denyList", "blackList", "deny_list"),
        serialization_alias="denyList",
    )
    allow_list: List[str] = Field(
        default_factory=list,
        validation_alias=AliasChoices("allowList", "whiteList", "allow_list"),
        serialization_alias="allowList",
    )
    created_at: datetime = Field(
        default_factory=utcnow,
        validation_alias=AliasChoices("createdAt", "created_at"),
        serialization_alias="createdAt",
    )
    updated_at: datetime = Field(
        default_factory=utcnow,
        validation_alias=AliasChoices("updatedAt", "updated_at"),
        serialization_alias="updatedAt",
    )
    is_active: bool = Field(
        default=True,
        validation_alias=AliasChoices("isActive", "is_active"),
        serialization_alias="isActive",
    )

    @classmethod
    def from_filter(cls, filter_set: FilterSet) -> "StoredFilterSet":
        deny: List[Union[str, StoredDenyItem]] = []
        for entry in filter_set.deny_list:
            if entry.kind is DenyEntryKind.TEMPORARY:
                deny.append(StoredDenyItem(item=entry.item, expires_at=entry.expires_at))
            else:
                deny.append(entry.item)
        return cls(
            id=filter_set.id,
            deny_list=deny,
            allow_list=list(filter_set.allow_list),
            created_at=filter_set.created_at,
            updated_at=filter_set.updated_at,
            is_active=filter_set.is_active,
        )

    def to_filter(self) -> FilterSet:
        deny: List[DenyEntry] = []
        for raw in self.deny_list:
            if isinstance(raw, str):
                deny.append(DenyEntry.permanent(raw))
            elif raw.expires_at is None:
                deny.append(DenyEntry.permanent(raw.item))
            else:
                deny.append(DenyEntry.temporary(raw.item, raw.expires_at))
        return FilterSet(
            id=self.id,
            deny_list=tuple(deny),
            allow_list=tuple(self.allow_list),
            created_at=_as_utc(self.created_at),
            updated_at=_as_utc(self.updated_at),
            is_active=self.is_active,
        )


# ---------------------------------------------------------------------------
# API payloads
# ---------------------------------------------------------------------------


class FilterCreatePayload(BaseModel):
    id: str = Field(default="default", min_length=1)
    deny_list: List[str] = Field(default_factory=list)
    allow_list: List[str] = Field(default_factory=list)


class DenyItemsPayload(BaseModel):
    items: List[str] = Field(..., min_length=1)
    ttl_seconds: Optional[float] = Field(default=None, gt=0)


class ItemsPayload(BaseModel):
    items: List[str] = Field(..., min_length=1)


class TogglePayload(BaseModel):
    is_active: Optional[bool] = None


class CheckPayload(BaseModel):
    text: str
    options: Optional[dict[str, Any]] = None


__all__ = [
    "CheckOptions",
    "CheckPayload",
    "CheckVerdict",
    "DenyEntry",
    "DenyEntryKind",
    "DenyItemsPayload",
    "FilterCreatePayload",
    "FilterSet",
    "FilterStats",
    "ItemsPayload",
    "StoredDenyItem",
    "StoredFilterSet",
    "TogglePayload",
    "utcnow",
]
