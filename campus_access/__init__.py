# =======================================================================================
# campus_access/__init__.py - Package Initialization
# =======================================================================================
"""
Campus Access Tap Ledger

Registry of RFID cardholders and an append-only log of entry/exit taps,
each tap carrying a snapshot of the cardholder's balance at tap time.
"""

__version__ = "1.0.0"
