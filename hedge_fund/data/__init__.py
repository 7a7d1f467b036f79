"""
Market data records and the per-ticker merge cache.
"""
