"""Command-line interface for chainyield"""

from .optimizer_cli import cli, main

__all__ = ['cli', 'main']
