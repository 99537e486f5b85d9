"""
BankPro Core

A single-actor retail banking core: sign-in, transfers between accounts,
card issuance and blocking, and transaction statements with CSV export.
All state lives in one persisted snapshot.
"""

__version__ = "1.0.0"
