"""Allow ``python -m gifweave``."""

from .cli import main

if __name__ == "__main__":
    main()
