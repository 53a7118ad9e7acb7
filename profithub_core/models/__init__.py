"""
Data models for analysis results.

Contains data structures for digit analysis snapshots and their components.
"""
