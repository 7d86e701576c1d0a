"""
fyarb - Fixed-Yield Pool Arbitrage Engine

Detects mispricing between fixed-yield AMM pools and a benchmark rate
curve, and sizes cross-pool trades that capture it.
"""

__version__ = "0.1.0"
