"""
HTTP API for the browser extension.
"""
