"""debpool CLI: Typer-based command-line interface.

Provides the ``debpool`` command with subcommands for importing files into
the package pool, publishing them into the public tree, sweeping the pool
for corruption and downloading remote files.

All output uses Rich for formatted terminal display.
"""
