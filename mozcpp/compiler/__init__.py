"""Compiler dialects, flag parsing and default probing."""
