"""
HTTP surface of the ledtech trust core
"""
