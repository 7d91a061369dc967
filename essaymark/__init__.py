"""
EssayMark: annotate, score and export scanned essay scripts.
"""
__version__ = "1.0.0"
