"""
Command line interface for cf-utils.
"""
