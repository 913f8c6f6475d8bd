"""
Convenience entry point for running bookingrules directly.

Usage: python -m bookingrules [command] [options]
"""

from .cli.app import app

if __name__ == "__main__":
    app()
