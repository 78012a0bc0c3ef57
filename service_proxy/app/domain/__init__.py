"""
Proxy domain package: content operations, error translation and bug reports.
"""
