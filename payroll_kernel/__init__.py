"""
Payroll Kernel

Shared infrastructure for the unified payroll computation engine:
- Typed exceptions with machine-readable codes
- Structured JSON logging
- Injectable clock
- SQLAlchemy base classes, engine and immutability listeners
"""

__version__ = "0.1.0"
