"""
Extraction of raw per peer connection samples from rtcstats dumps.
"""

from .dump_extractor import DumpExtractor, load_dump

__all__ = ["DumpExtractor", "load_dump"]
