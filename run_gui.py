"""UI entry point when running from a source checkout."""
from bbox_overlay.ui.app import main

if __name__ == "__main__":
    main()
