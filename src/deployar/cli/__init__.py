"""deployar command-line interface (``deployar`` console script)."""
