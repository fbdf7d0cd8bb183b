"""
Foreign Operator Permit System
Application intake, fee calculation, payment gating and permit lifecycle
"""

__version__ = "1.0.0"
