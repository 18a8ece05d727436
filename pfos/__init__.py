"""
PFOS Core - Source Package

Local, durable record store for personal finance transactions with
cross-instance change propagation and read-side aggregation.

DESIGN PRINCIPLES:
1. One shared storage handle per instance
2. Defaults are applied once, at the write boundary
3. Writes fail loudly, reads degrade to "no data"
4. Change notification is advisory, never required for correctness
5. Aggregation is pure and deterministic
"""

__version__ = "1.0.0"
__author__ = "PFOS Team"
