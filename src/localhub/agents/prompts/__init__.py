"""Prompt templates for LocalHub agents."""
