"""
Status lifecycle engine for packages and shipments.
"""
