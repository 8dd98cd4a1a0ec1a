"""chainsage: explorer facts in, normalized llm analysis out"""

__version__ = "1.0.0"
