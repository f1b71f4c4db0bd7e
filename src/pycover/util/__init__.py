"""
Utility modules for pycover.

- Type-based dispatch system (typedispatch.py)
- Application-level utilities: console, error handling, exceptions (application/)
- File system helpers (io/)
"""
