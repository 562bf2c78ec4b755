"""
Conditional execution layer for limit-order settlement: stop-loss/take-profit
triggers, iceberg disclosure, one-cancels-other pairing and keeper scheduling.
"""
__version__ = "0.1.0"
