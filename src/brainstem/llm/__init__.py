"""
LLM module - embedding generation.

Providers:
- litellm: any embedding model LiteLLM can route to
"""
