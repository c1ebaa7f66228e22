"""oranda: static landing pages for your projects.

oranda renders a project's README, extra markdown pages, funding details and
mdbook documentation into a small static site.

The main entry point is the CLI module, which provides commands for building
the site, serving it, and running the watch-and-rebuild dev loop.
"""

__all__ = ["__version__"]
__version__ = "0.1.0"
