"""Shared utilities: logging, text tokenization, file io, async helpers."""
