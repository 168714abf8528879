"""
Provider adapters, one per upstream news API plus the local demo dataset.
"""
from newsdesk.adapters.base import HttpNewsProvider, NewsProvider
from newsdesk.adapters.demo import DemoProvider
from newsdesk.adapters.guardian import GuardianProvider
from newsdesk.adapters.mediastack import MediastackProvider
from newsdesk.adapters.newsdata import NewsDataProvider
from newsdesk.adapters.nyt import NYTProvider

__all__ = [
    "DemoProvider",
    "GuardianProvider",
    "HttpNewsProvider",
    "MediastackProvider",
    "NYTProvider",
    "NewsDataProvider",
    "NewsProvider",
]
