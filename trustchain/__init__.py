"""
Trustchain — Federated Learning Participant Registry

Admits clients that present a hardware-backed identity proof, tracks a
bounded reputation score per client, and gates participation in training
rounds on that score.
"""

__version__ = "0.1.0"
