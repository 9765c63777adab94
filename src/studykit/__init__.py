"""Annotation, flashcard and quiz session engine for document study."""

__version__ = "0.1.0"
