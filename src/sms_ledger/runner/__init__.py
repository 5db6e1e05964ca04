"""
CLI runner module.

Provides commands:
- init-config: Write a default config file
- scan: List transaction candidates in the inbox
- review: Interactive tag → confirm/cancel loop
- reconcile: Submit one candidate non-interactively
- status: Journal statistics
"""

from .main import create_cli, main

__all__ = [
    "create_cli",
    "main",
]
