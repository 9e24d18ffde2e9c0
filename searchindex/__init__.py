"""
Open Search Index

A single-worker web crawler that builds and serves a disk-resident inverted index.
"""

__version__ = "1.0.0"
__description__ = "Web crawler with a per-keyword inverted index and ranked multi-keyword search"
