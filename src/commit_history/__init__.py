"""
Commit History - linear branch history reconstruction for hosted repositories.

Enumerates repositories and branches through a remote provider API and
walks each branch from its head commit back to the root along first-parent
links, tolerating provider throttling with bounded backoff.
"""

__version__ = "1.2.0"
