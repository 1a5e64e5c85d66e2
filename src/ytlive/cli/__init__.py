"""Command-line interface for ytlive."""
