"""Allow `python -m helios_mcp` to invoke the CLI entry-point."""

from .cli import main

if __name__ == "__main__":
    main()
