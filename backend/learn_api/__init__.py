"""Application package for the Learn server backend.

The package serves lessons (with their embedded vocabulary), tutorial
links and user accounts for the language-learning frontend. Individual
modules hold the concrete implementations and their documentation.
"""

__version__ = "1.0.0"
