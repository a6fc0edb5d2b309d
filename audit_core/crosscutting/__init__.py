"""
Crosscutting concerns: configuration, logging, errors, metrics, pagination.
"""
