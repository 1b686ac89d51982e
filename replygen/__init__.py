"""
replygen - assistant reply generation orchestrator.

Streams an assistant's reply from a language-model backend into a
conversation message, enforcing per-branch ordering, cooperative
cancellation and throttled live broadcasts.
"""

__version__ = "1.0.0"
