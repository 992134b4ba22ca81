"""
Kawasaki Water Spot Discovery
Browse, filter, search and rank public drinking water spots
"""

__version__ = "0.1.0"
