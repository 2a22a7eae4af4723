"""Click sub-commands registered by :mod:`dicomqr.cli`."""
