"""
FaceFind billing.

Quotes FaceFind events from their size and retention and manages the
billing settings the quotes are priced against.
"""

__version__ = "0.1.0"
