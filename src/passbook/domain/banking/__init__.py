"""Banking domain package.

This package contains the domain model for statement retrieval,
including the bank adapter port, normalized records and catalog rules.
"""
