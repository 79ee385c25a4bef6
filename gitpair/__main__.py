"""Allow ``python -m gitpair``."""

from gitpair.cli import app

if __name__ == "__main__":
    app()
