"""
Inbox SMS → Transaction Extraction → Human annotation → Remote ledger

A small, testable pipeline that finds bank transaction messages in the
device inbox, lets the user tag each one, posts it to a remote ledger and
removes the source message once the ledger accepted it.
"""

__version__ = "0.1.0"
