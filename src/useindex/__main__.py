from useindex.cli import cli

cli()
