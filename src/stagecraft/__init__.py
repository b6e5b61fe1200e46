"""
Stagecraft: assemble typed pipeline stages into a graph and preview them.

Nodes are wired source -> transforms -> destination and executed in
dependency order against an in-memory sample dataset.
"""

__version__ = "0.1.0"
