"""
Answer-sheet geometric normalization
"""
__version__ = "1.0.0"
