"""Streaming extraction of memory mutations from generative output."""
