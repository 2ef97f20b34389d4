"""
Gollum: a WebSocket bridge to a streaming text-generation backend.
"""

__version__ = "0.1.0"
