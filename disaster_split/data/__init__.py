"""
Dataset caching, CSV record I/O, grouping, and per-group output files.

Everything that touches the cached source CSV or the per-disaster output
directory lives in this package.
"""
