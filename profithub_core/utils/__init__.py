"""
Utility functions module.

Time Semantics:
- Feed epochs are ALWAYS authoritative for ticks, snapshots and signals
- Wall-clock time is only used for trade bookkeeping and as a fallback
"""
