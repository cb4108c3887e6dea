"""
External search and agent API clients.
"""
