"""
Weaklog Common Module

Shared infrastructure: configuration, errors, schemas and the LLM client.
"""

from .config import WeaklogConfig, load_config, save_config, setup_logging
from .llm_client import LLMClient
from .providers import CallOptions

__all__ = [
    "WeaklogConfig",
    "load_config",
    "save_config",
    "setup_logging",
    "LLMClient",
    "CallOptions",
]
