"""
Pydantic models for raw provider payloads.

Envelopes are validated strictly enough to detect a malformed response; the
entries inside them are parsed one by one so a single odd record is dropped
instead of failing the whole batch.
"""
from __future__ import annotations

import logging
from typing import Any, Dict, Iterable, List, Optional, Type, TypeVar, Union

from pydantic import BaseModel, Field, ValidationError, field_validator

logger = logging.getLogger(__name__)

M = TypeVar("M", bound=BaseModel)


def _strip(value: Any) -> Any:
    if isinstance(value, str):
        return value.strip() or None
    return value


class _Entry(BaseModel):
    @field_validator("*", mode="before")
    @classmethod
    def _trim_strings(cls, value: Any) -> Any:
        return _strip(value)


def parse_entries(model: Type[M], raw_entries: Iterable[Any]) -> List[M]:
    parsed: List[M] = []
    for raw in raw_entries:
        if not isinstance(raw, dict):
            continue
        try:
            parsed.append(model.model_validate(raw))
        except ValidationError as exc:
            logger.debug("Dropping unparseable %s entry: %s", model.__name__, exc.error_count())
    return parsed


# Guardian


class GuardianFields(_Entry):
    thumbnail: Optional[str] = None
    trailText: Optional[str] = None
    body: Optional[str] = None
    wordcount: Optional[Union[int, str]] = None


class GuardianItem(_Entry):
    id: Optional[str] = None
    webTitle: Optional[str] = None
    webUrl: Optional[str] = None
    webPublicationDate: Optional[str] = None
    sectionName: Optional[str] = None
    fields: Optional[GuardianFields] = None


class GuardianSection(_Entry):
    id: str
    webTitle: str


class GuardianResponse(BaseModel):
    status: Optional[str] = None
    message: Optional[str] = None
    results: List[Dict[str, Any]] = []


class GuardianEnvelope(BaseModel):
    response: GuardianResponse


# New York Times


class NytMultimedia(_Entry):
    url: Optional[str] = None
    format: Optional[str] = None
    width: Optional[int] = None
    height: Optional[int] = None


class NytTopStory(_Entry):
    title: Optional[str] = None
    abstract: Optional[str] = None
    url: Optional[str] = None
    short_url: Optional[str] = None
    uri: Optional[str] = None
    byline: Optional[str] = None
    published_date: Optional[str] = None
    created_date: Optional[str] = None
    section: Optional[str] = None
    des_facet: Optional[List[str]] = None
    multimedia: Optional[List[Dict[str, Any]]] = None


class NytHeadline(_Entry):
    main: Optional[str] = None
    print_headline: Optional[str] = None


class NytByline(_Entry):
    original: Optional[str] = None


class NytSearchDoc(_Entry):
    id: Optional[str] = Field(default=None, alias="_id")
    headline: Optional[NytHeadline] = None
    abstract: Optional[str] = None
    lead_paragraph: Optional[str] = None
    snippet: Optional[str] = None
    web_url: Optional[str] = None
    byline: Optional[NytByline] = None
    pub_date: Optional[str] = None
    section_name: Optional[str] = None
    news_desk: Optional[str] = None
    multimedia: Optional[Union[List[Dict[str, Any]], Dict[str, Any]]] = None


class NytTopStoriesEnvelope(BaseModel):
    status: Optional[str] = None
    results: List[Dict[str, Any]]


class NytSearchResponse(BaseModel):
    docs: List[Dict[str, Any]] = []


class NytSearchEnvelope(BaseModel):
    response: NytSearchResponse


# Mediastack


class MediastackItem(_Entry):
    title: Optional[str] = None
    description: Optional[str] = None
    url: Optional[str] = None
    source: Optional[str] = None
    author: Optional[str] = None
    published_at: Optional[str] = None
    category: Optional[str] = None
    image: Optional[str] = None


class MediastackEnvelope(BaseModel):
    data: List[Dict[str, Any]] = []


# NewsData.io


class NewsDataItem(_Entry):
    article_id: Optional[str] = None
    title: Optional[str] = None
    description: Optional[str] = None
    link: Optional[str] = None
    source_id: Optional[str] = None
    creator: Optional[List[Optional[str]]] = None
    pubDate: Optional[str] = None
    category: Optional[List[Optional[str]]] = None
    image_url: Optional[str] = None


class NewsDataEnvelope(BaseModel):
    status: Optional[str] = None
    results: List[Dict[str, Any]] = []
