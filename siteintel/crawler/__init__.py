from siteintel.crawler.fetcher import fetch_url
from siteintel.crawler.frontier import crawl_site
from siteintel.crawler.models import CrawlResult, FetchError, PageSnapshot, RawPage

__all__ = ["CrawlResult", "FetchError", "PageSnapshot", "RawPage", "crawl_site", "fetch_url"]
