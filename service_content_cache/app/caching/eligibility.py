"""
Request eligibility rules for the content cache.

Learned from full-page cache rules: shared cache entries must never be read
or written for requests whose output can depend on who is asking or on how
the request was made.
"""

from dataclasses import dataclass, field
from typing import Any, Optional

from ..models import DEFAULT_RENDER_PARAMETERS, RenderParameters, normalize_content_id


SAFE_METHOD = "GET"

BYPASS_BACKEND_UNAVAILABLE = "backend_unavailable"
BYPASS_AUTHENTICATED = "authenticated"
BYPASS_METHOD_NOT_GET = "method_not_get"
BYPASS_MISSING_CONTENT_ID = "missing_content_id"
BYPASS_DO_NOT_CACHE = "do_not_cache"
BYPASS_NON_DEFAULT_PARAMS = "non_default_params"


@dataclass(frozen=True)
class EligibilityContext:
    """Everything the eligibility decision depends on."""
    backend_available: bool
    is_authenticated: bool
    method: Optional[str]
    content_id: Any
    do_not_cache: bool = False
    params: RenderParameters = field(default=DEFAULT_RENDER_PARAMETERS)


def bypass_reason(ctx: EligibilityContext) -> Optional[str]:
    """Return why the request must bypass the cache, or None if it may use it."""
    if not ctx.backend_available:
        return BYPASS_BACKEND_UNAVAILABLE
    if ctx.is_authenticated:
        return BYPASS_AUTHENTICATED
    if not ctx.method or ctx.method.upper() != SAFE_METHOD:
        return BYPASS_METHOD_NOT_GET
    if normalize_content_id(ctx.content_id) is None:
        return BYPASS_MISSING_CONTENT_ID
    if ctx.do_not_cache:
        return BYPASS_DO_NOT_CACHE
    if ctx.params is None or not ctx.params.is_default:
        # TODO: hash render parameters into the cache key to cache non-default renders
        return BYPASS_NON_DEFAULT_PARAMS
    return None


def is_eligible(ctx: EligibilityContext) -> bool:
    """Whether the request may consult and populate the cache."""
    return bypass_reason(ctx) is None
