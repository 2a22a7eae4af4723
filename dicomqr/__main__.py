"""Allow ``python -m dicomqr``."""

from dicomqr.cli import cli

if __name__ == "__main__":
    cli()
