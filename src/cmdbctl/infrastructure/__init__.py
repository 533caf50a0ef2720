"""Infrastructure layer — relational store, graph store, schema validation.

This layer depends on stdlib and third-party libs (SQLAlchemy, NetworkX,
jsonschema). It must never import from domain, services, commands, or output.
The service layer bridges between domain rules and infrastructure.
"""
