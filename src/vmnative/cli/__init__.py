"""
CLI commands for vmnative.
"""

from vmnative.cli.main import build_parser, main

__all__ = ["build_parser", "main"]
