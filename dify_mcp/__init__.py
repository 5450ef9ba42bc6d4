# ---------------------------------------------------------------------------
# Public library API
# ---------------------------------------------------------------------------

from .chat import ChatService  # noqa: F401
from .client import DifyClient  # noqa: F401
from .models import AggregationResult, ChatRequest  # noqa: F401
from .stream import StreamAggregator  # noqa: F401

__version__ = "0.1.0"

__all__ = [
    "ChatService",
    "DifyClient",
    "AggregationResult",
    "ChatRequest",
    "StreamAggregator",
]
