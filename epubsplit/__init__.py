"""EpubSplit: split EPUB books into smaller EPUBs.

EpubSplit lists the addressable split points of an EPUB (spine documents,
further divided at table-of-contents anchors) and writes new, self-contained
EPUBs from any selection of them.
"""

__version__ = "0.1.0"
