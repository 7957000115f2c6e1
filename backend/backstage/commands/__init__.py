"""Command-line maintenance tools, each runnable as `python -m backstage.commands.<name>`."""
