"""llm backend package: one interface, one class per provider.

provider sdks are imported by the factory only for the backend in use.
"""

from .base import LLMResponse, LLMBackend, estimate_cost
from .factory import create_backend

__all__ = [
    "LLMResponse",
    "LLMBackend",
    "estimate_cost",
    "create_backend",
]
