"""Local business website pipeline.

Discovers local businesses that have no website, generates candidate sites for
them with an AI provider, and deploys previews to a static hosting platform,
tracking each business through a persistent status lifecycle.
"""

__version__ = "0.1.0"
