"""Allow running as ``python -m stampprint``."""

from stampprint.cli import main

if __name__ == "__main__":
    main()
