"""
Plant Doctor: on-device apple leaf disease classification and enrichment.
"""

__version__ = "0.1.0"
