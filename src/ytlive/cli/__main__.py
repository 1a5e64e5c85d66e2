#!/usr/bin/env python3
"""
CLI entry point for ytlive.cli module.

This allows running: python -m ytlive.cli
"""

from .main import cli

if __name__ == "__main__":
    cli()
