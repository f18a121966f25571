"""
Bookkeeping Kernel

Pure domain values and infrastructure shared by every bookkeeping module:
- Money in integer minor units with ISO 4217 currencies
- Declarative document state machines
- Typed, coded exceptions
- Structured JSON logging
- SQLAlchemy base classes and engine/session management
"""

__version__ = "0.1.0"
