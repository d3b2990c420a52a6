"""
Core kvgate functionality: configuration, logging, plugins and the app factory.
"""
