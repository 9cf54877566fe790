"""Allow running as ``python -m sparktop``."""

from sparktop.cli import main

if __name__ == "__main__":
    main()
