"""Allow ``python -m diskmon`` to launch the monitor."""

from diskmon.app.master import cli

if __name__ == "__main__":
    cli()
