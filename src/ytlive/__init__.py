"""
ytlive - lifecycle and stop-schedule engine for YouTube live-stream jobs.
"""

__version__ = "0.1.0"
