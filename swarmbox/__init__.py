"""
swarmbox - lifecycle manager for the GPU development container
"""

__version__ = "0.3.0"
