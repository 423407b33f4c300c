"""Domain layer — verbs, validation rules, policy documents, image targets.

This layer depends only on stdlib and pydantic.
It must never import from services, infrastructure, commands, or config.
"""
