"""SiteIntel — company website intelligence pipeline.

Crawls a business's public web presence, extracts structured business
signals, and merges them into a canonical company record with a knowledge
graph and a crawl-quality score.
"""

__version__ = "0.3.0"
