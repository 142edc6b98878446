"""
Presentation Layer.

This package holds the Typer command-line interface, the Rich formatters, and
the interactive catalog screen.
"""
