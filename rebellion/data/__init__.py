"""Packaged card definition tables."""
