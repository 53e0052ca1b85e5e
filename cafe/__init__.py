"""café ordering client: menu browsing, profiles and orders over a sqlite store"""

__version__ = "1.0.0"
