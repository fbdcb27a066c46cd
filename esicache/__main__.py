"""Main entry point when executing esicache as a package.

This allows running the package using python -m esicache.
"""

from esicache.main import cli_entry_point

if __name__ == "__main__":
    cli_entry_point()
