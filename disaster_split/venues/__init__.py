"""
HTTP clients for remote dataset sources.
"""
