"""
Infrastructure: database, ledger store, cache and push transport
"""
