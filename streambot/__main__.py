"""Entry point for running streambot as a module: python -m streambot"""

from streambot.cli.commands import app

if __name__ == "__main__":
    app()
