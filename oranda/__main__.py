"""Entry point for running oranda as ``python -m oranda``."""

from .cli import main

if __name__ == "__main__":  # pragma: no cover
    main()
