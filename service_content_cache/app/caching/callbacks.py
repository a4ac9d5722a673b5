"""
Callback signatures supplied by the host.

Every callback may be a plain function or a coroutine function.
"""

import asyncio
from typing import Any, Awaitable, Callable, Optional, Union

from ..models import ContentIdentifier, ContentRecord, RenderParameters, RequestContext


# Receives rendered output chunks on their way to the transport
Sink = Callable[[str], Union[None, Awaitable[None]]]

ReturnRenderer = Callable[[RequestContext, RenderParameters], Union[str, Awaitable[str]]]

EmitRenderer = Callable[[RequestContext, RenderParameters, Sink], Union[None, Awaitable[None]]]

RecordLoader = Callable[
    [ContentIdentifier],
    Union[Optional[ContentRecord], Awaitable[Optional[ContentRecord]]],
]


async def await_if_needed(result: Any) -> Any:
    """Await coroutine results, pass anything else through."""
    if asyncio.iscoroutine(result) or isinstance(result, asyncio.Future):
        return await result
    return result
