# Domain Layer
"""
Domain layer containing entities and interfaces.

This layer is independent of storage technology.
"""
