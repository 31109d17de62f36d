"""Domain layer — descriptor models, artifacts, tokens, config rendering.

This layer depends only on stdlib and pydantic.
It must never import from services, infrastructure, commands, or config.
"""
