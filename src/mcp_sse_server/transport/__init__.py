"""Transport layer.

The push stream is Server-Sent Events; the request leg is plain HTTP POST.
"""

from .channel import OutboundChannel, SseEvent
from .sse import DEFAULT_SESSION_ID, SseTransport

__all__ = [
    "DEFAULT_SESSION_ID",
    "OutboundChannel",
    "SseEvent",
    "SseTransport",
]
