"""
Repositories for the product store and scan ledger.
"""
