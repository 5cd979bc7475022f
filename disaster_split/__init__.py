"""
disaster_split – download FEMA OpenFEMA CSV datasets and split them into one
CSV per disaster number.
"""

__version__ = "0.1.0"
