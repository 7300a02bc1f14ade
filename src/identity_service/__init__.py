"""Identity Service

OAuth identity reconciliation with redacted HTTP exchange logging.
"""

__version__ = "1.0.0"
