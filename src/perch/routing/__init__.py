"""Routing — path normalization, the page catalog, and resolution.

The catalog is compiled once from the page tree into an immutable trie;
``resolve()`` walks it in O(path-depth) with static edges tried before
parameter edges.
"""
