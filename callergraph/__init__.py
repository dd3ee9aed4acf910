"""CallerGraph: crawl the callers of a Go function with gopls and render them as a D2 diagram."""

__version__ = "0.1.0"
