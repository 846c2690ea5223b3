"""Infrastructure layer — database, member store, graph engine, password hashing.

This layer depends on stdlib, the domain layer, and third-party libs
(SQLAlchemy, NetworkX, passlib). It must never import from services,
commands, or output.
"""
