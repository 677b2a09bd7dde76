"""Ports and adapters for the collaborators of the memory lifecycle engine."""
