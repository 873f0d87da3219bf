"""Test package marker for the mailtree suites.

What:
  Marks ``tests`` as a package so pytest resolves the shared ``conftest``
  before the nested ``unit`` and ``e2e`` directories.

How:
  Exposes no symbols and performs no imports.
"""
