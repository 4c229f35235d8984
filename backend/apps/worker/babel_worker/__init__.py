"""
Babel Worker.

arq worker running the post translation lifecycle jobs.
"""

__version__ = "0.1.0"
