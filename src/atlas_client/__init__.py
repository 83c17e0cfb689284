"""Atlas Client.

Typed client for the RIPE Atlas measurement network REST API: probes,
measurements, anchors, API keys and credits.
"""

__version__ = "0.1.0"
