"""
Linen Kernel

Shared primitives for the linen-service operations tool:
- Typed errors with machine-readable codes
- Structured JSON logging
- Canonical currency rounding
- Persistence base classes and ORM models for clients, categories and batches
"""

__version__ = "0.1.0"
