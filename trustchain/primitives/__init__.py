"""
Trustchain — Primitives

Shared models and value helpers used by every system.
"""
