"""
Freight reverse-auction engine
"""
__version__ = "1.0.0"
