"""
Upstream throttling cooperation for the proxy.
"""
