"""Allow ``python -m livekb.cli`` execution."""

from livekb.cli.ingest import main

main()
