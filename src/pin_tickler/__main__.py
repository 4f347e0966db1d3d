"""Main entry point for the pin_tickler package."""
from pin_tickler.cli import main


if __name__ == "__main__":
    main()
