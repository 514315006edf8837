"""
Billing Kernel - shared primitives for the travel-agency billing engines.

- Typed exceptions with machine-readable codes
- Structured JSON logging with request-scoped context
- Decimal-only amount coercion
"""

__version__ = "0.1.0"
