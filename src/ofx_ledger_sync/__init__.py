"""Import OFX bank statements into YNAB exactly once."""

__version__ = "0.1.0"
