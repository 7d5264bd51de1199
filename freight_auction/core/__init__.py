"""
Core configuration, errors, logging and metrics
"""
