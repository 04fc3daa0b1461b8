"""Protection services backing the HTTP surface."""
