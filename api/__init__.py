"""
HTTP API for the SEO metadata pipeline.
"""
