"""Passbook - uniform statement retrieval across online banking backends."""

__version__ = "0.1.0"
