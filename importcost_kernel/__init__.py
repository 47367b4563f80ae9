"""
Import Cost Kernel

Shared foundation for the import costing and sales-allocation core:
- Decimal arithmetic helpers and currency value objects
- Explicit, self-validating domain records
- Typed exception hierarchy
- Structured JSON logging
- SQLAlchemy base, engine and ORM models
"""

__version__ = "0.1.0"
