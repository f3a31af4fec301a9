"""Provider connections.

Each module imports its own driver, so import them directly rather than
through this package.
"""
