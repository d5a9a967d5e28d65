"""Command-line interface (``asec``)."""
