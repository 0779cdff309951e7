"""
Node Compositor - A node-based compositing graph engine.
"""

__version__ = "0.1.0"
