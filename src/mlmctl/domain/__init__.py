"""Domain layer — member types, placement models, errors and the store contract.

This layer depends only on stdlib and pydantic.
It must never import from services, infrastructure, commands, or config.
"""
