"""Markdown report rendering: template engine, bundled templates, generator."""
