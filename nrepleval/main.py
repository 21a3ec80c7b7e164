#!/usr/bin/env python3
"""
Main entry point for the nrepleval CLI.

Delegates to the UI layer in nrepleval.ui.cli to keep the console script
mapping stable.
"""

from nrepleval.ui.cli import run as nrepleval


if __name__ == "__main__":
    nrepleval()
