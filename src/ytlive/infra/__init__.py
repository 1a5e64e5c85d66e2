"""
Infrastructure layer - persistence, logging, settings, and error types.

This layer contains technical concerns shared by the runtime, the HTTP API
and the CLI.
"""
