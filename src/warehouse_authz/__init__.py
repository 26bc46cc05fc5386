"""Effective permission resolution and warehouse scoping engine."""

__version__ = "0.1.0"
