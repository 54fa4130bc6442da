"""
Utility Package.

Modules:
    - ``console``: Rich-backed logging and console output.
"""
