"""
disaster_split – Main entry point.

Runs the standard download-and-split job; see actions/split_ihp_by_disaster.py
for options.
"""

from actions.split_ihp_by_disaster import main


if __name__ == "__main__":
    main()
