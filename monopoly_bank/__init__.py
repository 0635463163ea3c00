"""
Monopoly Bank

Team ledger for an in-person Monopoly game: team cash, property ownership
and net worth, with every mutation applied as one atomic transaction.
"""

__version__ = "1.0.0"
