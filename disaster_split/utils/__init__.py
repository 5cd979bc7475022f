"""
Generic utility functions shared across modules.

Currently holds the clock abstraction used for cache-age decisions.
"""
