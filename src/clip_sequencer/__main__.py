"""Clip Sequencer - entry point for python -m clip_sequencer"""

from .cli import cli

if __name__ == "__main__":
    cli()
