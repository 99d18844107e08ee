"""
Bitcoin blocks and transactions as a Neo4j graph.
"""

__version__ = "1.0.0"
