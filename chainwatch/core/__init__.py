"""
Core utilities — shared error taxonomy used by the RPC layer and the watcher.
"""
