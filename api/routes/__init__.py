"""
API route blueprints.
"""
