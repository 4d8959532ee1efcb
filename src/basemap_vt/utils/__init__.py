"""
Shared utilities: configuration, errors, logging and spatial math.
"""
