"""Recipe Assistant: tool-calling question answering over a recipe knowledge graph."""

__version__ = "0.1.0"
