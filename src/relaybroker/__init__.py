"""
relaybroker — pairs two endpoints that cannot reach each other and relays
commands between them over WebSockets.
"""

__version__ = "0.1.0"
