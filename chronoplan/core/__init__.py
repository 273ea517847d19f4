"""Core infrastructure for chronoplan: configuration, logging and time helpers."""
