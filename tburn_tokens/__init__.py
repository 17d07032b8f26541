"""
TBURN token factory and registry

Encodes factory deployments for the TBC-20, TBC-721 and TBC-1155 token
standards, estimates gas, processes deployment receipts and keeps the
registry of deployed tokens.
"""

__version__ = "0.1.0"
