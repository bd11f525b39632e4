"""NMW Guard: deterministic UK minimum wage compliance engine."""

__version__ = "0.1.0"
