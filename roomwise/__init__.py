"""
Roomwise API: room analysis, design recommendations and visualizations
"""
__version__ = "1.0.0"
