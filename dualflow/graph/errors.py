# dualflow/graph/errors.py
"""Validation errors raised by graph mutations"""


class GraphStoreError(Exception):
    """Graph store operation errors"""
    pass


class CrossSideConnectionError(GraphStoreError):
    """An edge or relation was requested between nodes on the wrong sides"""
    pass
