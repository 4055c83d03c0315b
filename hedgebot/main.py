"""Entry point for ``python -m hedgebot.main``."""
from .cli import main

if __name__ == "__main__":
    main()
