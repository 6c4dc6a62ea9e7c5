"""Carryofy checkout engine.

Turns a buyer's cart or an approved B2B quote into a paid order over
the remote commerce API.
"""

__version__ = "0.1.0"
