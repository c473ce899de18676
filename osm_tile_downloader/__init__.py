"""
Download map tile images from an OSM tile server.
"""

__version__ = '0.1.0'
