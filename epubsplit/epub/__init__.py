"""EPUB reading and split-writing package for EpubSplit.

This package parses the container, package and NCX documents of a source
EPUB into an :class:`EpubModel`, derives its split points, and writes new
EPUBs from a selection of them with :class:`SplitEpubWriter`.
"""

from .model import EpubModel, SplitPoint
from .writer import SplitEpubWriter, write_split_epub

__all__ = ['EpubModel', 'SplitPoint', 'SplitEpubWriter', 'write_split_epub']
