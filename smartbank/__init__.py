"""
SmartBank Back Office

Admin and client accounts, currency exchange rates and an append-only
transaction ledger, persisted to flat text files.
"""

__version__ = "1.0.0"
