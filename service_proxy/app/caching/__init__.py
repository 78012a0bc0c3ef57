"""
Proxy caching package.

Responses are kept in memory only, bounded by their estimated byte size,
and revalidated against the upstream instead of expiring.
"""
