"""Dual Flow - paired process/task diagrams with cross-graph relations"""

__version__ = "0.1.0"
