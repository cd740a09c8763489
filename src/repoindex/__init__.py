"""
repoindex - resource-aware publishing of per-repository code indices.
"""

__version__ = "0.1.0"
