"""CLI entry point when running from a source checkout."""
from bbox_overlay.cli.main import main

if __name__ == "__main__":
    main()
