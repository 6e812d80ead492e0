"""
Purchasing kernel: persistence, pure domain rules, numbering, audit log,
authorization gate and the reference data every purchasing document uses.
"""

__version__ = "0.1.0"
