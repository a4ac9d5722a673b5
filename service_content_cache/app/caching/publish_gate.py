"""
Publish gate: whether a content unit's rendered body may be shared via cache.
"""

from typing import Optional

from ..models import ContentRecord, ContentStatus


def is_publishable(record: Optional[ContentRecord]) -> bool:
    """True iff the record exists, is published and is not password protected.

    Only consulted when writing. Entries for content that later loses its
    published state are removed by the invalidation coordinator, not here.
    """
    if record is None:
        return False
    if record.status != ContentStatus.PUBLISHED:
        return False
    return not record.password
