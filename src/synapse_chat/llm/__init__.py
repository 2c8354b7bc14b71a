from .base import LLMProvider
from .client import FALLBACK_MODELS, CompletionClient, merge_default_model
from .factory import create_llm_provider
from .models import ChatMessage, LLMResponse, StreamingResponse
from .providers import OpenAICompatibleProvider
from .sse import iter_content_deltas

__all__ = [
    "FALLBACK_MODELS",
    "ChatMessage",
    "CompletionClient",
    "LLMProvider",
    "LLMResponse",
    "OpenAICompatibleProvider",
    "StreamingResponse",
    "create_llm_provider",
    "iter_content_deltas",
    "merge_default_model",
]
