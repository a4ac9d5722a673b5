"""
Data models for the content cache.
"""

from typing import Any, Dict, Optional, Union
from dataclasses import dataclass
from enum import Enum

from pydantic import BaseModel, Field


ContentIdentifier = Union[int, str]


class ContentStatus(str, Enum):
    """Persisted content statuses."""
    DRAFT = "draft"
    AUTO_DRAFT = "auto-draft"
    PENDING = "pending"
    PRIVATE = "private"
    FUTURE = "future"
    PUBLISHED = "publish"
    INHERIT = "inherit"
    TRASH = "trash"


class CacheBucket(str, Enum):
    """Namespaces for the two delivery variants."""
    EMIT = "the_content"
    RETURN = "get_the_content"


KNOWN_BUCKETS = (CacheBucket.EMIT, CacheBucket.RETURN)


class LifecycleEventType(str, Enum):
    """Content lifecycle signals the invalidation coordinator reacts to."""
    POST_PUBLISHED = "post_published"
    POST_EDITED = "post_edited"
    POST_DELETED = "post_deleted"
    POST_TRASHED = "post_trashed"
    CACHE_CLEAN = "clean_post_cache"
    STATUS_TRANSITION = "transition_post_status"


def normalize_content_id(value: Any) -> Optional[ContentIdentifier]:
    """Return a usable content identifier or None when absent/malformed."""
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value if value > 0 else None
    if isinstance(value, str):
        value = value.strip()
        if not value:
            return None
        try:
            numeric = int(value)
        except ValueError:
            return value
        return value if numeric > 0 else None
    return None


@dataclass(frozen=True)
class RenderParameters:
    """Optional arguments influencing rendering.

    Only the default parameter set is cacheable; the cache key does not
    include the parameters.
    """
    more_link_text: Optional[str] = None
    strip_teaser: bool = False

    @property
    def is_default(self) -> bool:
        return self.more_link_text is None and self.strip_teaser is False


DEFAULT_RENDER_PARAMETERS = RenderParameters()


@dataclass(frozen=True)
class ContentRecord:
    """Persisted state of a content unit, as loaded from the host."""
    content_id: ContentIdentifier
    status: str
    password: Optional[str] = None


@dataclass
class RequestContext:
    """Per-request inputs to the cache decision."""
    content_id: Any = None
    method: str = "GET"
    is_authenticated: bool = False
    do_not_cache: bool = False
    suspend_cache_addition: bool = False


@dataclass(frozen=True)
class LifecycleSignal:
    """A content lifecycle event delivered to subscribers."""
    event_type: LifecycleEventType
    content_id: Any = None
    new_status: Optional[str] = None
    old_status: Optional[str] = None
    record: Optional[ContentRecord] = None

    @property
    def resolved_content_id(self) -> Optional[ContentIdentifier]:
        """The signal's identifier, falling back to the attached record."""
        content_id = normalize_content_id(self.content_id)
        if content_id is None and self.record is not None:
            content_id = normalize_content_id(self.record.content_id)
        return content_id


class LifecycleEventRequest(BaseModel):
    """Request model for lifecycle event delivery."""
    event: LifecycleEventType = Field(..., description="Lifecycle event type")
    content_id: Union[int, str] = Field(..., description="Content identifier")
    new_status: Optional[str] = Field(None, description="Status after a transition")
    old_status: Optional[str] = Field(None, description="Status before a transition")

    def to_signal(self) -> LifecycleSignal:
        record = None
        if self.event == LifecycleEventType.STATUS_TRANSITION and self.new_status is not None:
            record = ContentRecord(content_id=self.content_id, status=self.new_status)
        return LifecycleSignal(
            event_type=self.event,
            content_id=self.content_id,
            new_status=self.new_status,
            old_status=self.old_status,
            record=record,
        )


class LifecycleEventResponse(BaseModel):
    """Response model for lifecycle event delivery."""
    event: LifecycleEventType
    content_id: Union[int, str]
    handlers_invoked: int


class ContentRecordPayload(BaseModel):
    """Upstream content service representation of a content record."""
    id: Union[int, str]
    status: str
    password: Optional[str] = None

    def to_record(self) -> ContentRecord:
        return ContentRecord(content_id=self.id, status=self.status, password=self.password)


def render_params_query(params: RenderParameters) -> Dict[str, str]:
    """Query parameters forwarding non-default render parameters upstream."""
    query: Dict[str, str] = {}
    if params.more_link_text is not None:
        query["more_link_text"] = params.more_link_text
    if params.strip_teaser:
        query["strip_teaser"] = "1"
    return query
