"""Domain layer — request models, rules, and pure calculations.

This layer depends only on stdlib and pydantic.
It must never import from services, infrastructure, commands, or config.
"""
