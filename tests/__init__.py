"""Test package for mailpop.

What:
  Marks ``tests`` as a package so the root ``conftest.py`` is imported once
  under a stable name.

Invariants & Safety:
  - Importing ``tests`` must stay side-effect free; path setup lives in
    ``tests/conftest.py``.
"""
