"""
tiermem - tiered memory lifecycle engine for conversational agents.
"""

__version__ = "1.0.0"
