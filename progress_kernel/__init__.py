"""
Progress Kernel

Domain records, value helpers, clock, structured logging and typed
errors shared by the progress-curve engines:
- Canonical calendar-day timeline types
- Decimal-only percentage arithmetic clamped to [0, 100]
- Deterministic, I/O-free domain objects
"""

__version__ = "0.1.0"
