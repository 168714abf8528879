"""
Command line entry point: run one store operation and print the result as JSON.
"""
import asyncio
import json
import logging
from dataclasses import asdict
from typing import Any, Awaitable, Callable, Dict

import click

from newsdesk import build_store
from newsdesk.settings import load_settings
from newsdesk.status import build_status
from newsdesk.store import SPORTS, TOP_STORIES, NewsStore


def _echo(payload: Dict[str, Any]) -> None:
    click.echo(json.dumps(payload, ensure_ascii=False, indent=2))


def _run(ctx: click.Context, action: Callable[[NewsStore], Awaitable[Dict[str, Any]]]) -> None:
    settings = load_settings(ctx.obj.get("dotenv"))

    async def main() -> Dict[str, Any]:
        async with build_store(settings) as store:
            return await action(store)

    _echo(asyncio.run(main()))


def _section_payload(store: NewsStore, section: str) -> Dict[str, Any]:
    articles = store.state.articles.sections.get(section, [])
    return {
        "section": section,
        "error": store.state.articles.error,
        "count": len(articles),
        "articles": [article.to_dict() for article in articles],
    }


@click.group()
@click.option("--verbose", "-v", is_flag=True, help="Debug logging.")
@click.option("--dotenv", default=None, help="Path to a .env file with API keys.")
@click.pass_context
def cli(ctx: click.Context, verbose: bool, dotenv: str) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    ctx.ensure_object(dict)
    ctx.obj["dotenv"] = dotenv


@cli.command()
@click.pass_context
def top(ctx: click.Context) -> None:
    """Top stories across all providers."""

    async def action(store: NewsStore) -> Dict[str, Any]:
        await store.load_top_stories()
        return _section_payload(store, TOP_STORIES)

    _run(ctx, action)


@cli.command()
@click.argument("name")
@click.option("--region", default=None, help="Region for the local section.")
@click.option("--follow", "follow", multiple=True, help="Followed topic for the for_you section (repeatable).")
@click.pass_context
def section(ctx: click.Context, name: str, region: str, follow) -> None:
    """Load a section: for_you, local, or any topic id."""

    async def action(store: NewsStore) -> Dict[str, Any]:
        if region:
            store.state.preferences.region = region.lower()
        if follow:
            store.state.preferences.followed_topics = list(follow)
        await store.load_section(name)
        return _section_payload(store, name)

    _run(ctx, action)


@cli.command()
@click.pass_context
def sports(ctx: click.Context) -> None:
    """Sports news across all providers."""

    async def action(store: NewsStore) -> Dict[str, Any]:
        await store.load_sports_news()
        return _section_payload(store, SPORTS)

    _run(ctx, action)


@cli.command()
@click.argument("query")
@click.pass_context
def search(ctx: click.Context, query: str) -> None:
    """Search every provider for QUERY."""

    async def action(store: NewsStore) -> Dict[str, Any]:
        await store.search_news(query)
        results = store.state.search.results
        return {
            "query": query,
            "error": store.state.search.error,
            "count": len(results),
            "articles": [article.to_dict() for article in results],
        }

    _run(ctx, action)


@cli.command()
@click.pass_context
def topics(ctx: click.Context) -> None:
    """Merged topic catalog."""

    async def action(store: NewsStore) -> Dict[str, Any]:
        await store.load_topics()
        return {"topics": [asdict(topic) for topic in store.state.topics.available]}

    _run(ctx, action)


@cli.command()
@click.pass_context
def publishers(ctx: click.Context) -> None:
    """Merged publisher catalog."""

    async def action(store: NewsStore) -> Dict[str, Any]:
        await store.load_publishers()
        return {"publishers": [asdict(publisher) for publisher in store.state.publishers.available]}

    _run(ctx, action)


@cli.command()
@click.pass_context
def status(ctx: click.Context) -> None:
    """Provider availability, cooldowns and request counters."""

    async def action(store: NewsStore) -> Dict[str, Any]:
        return build_status(store.engine.manager, store.settings)

    _run(ctx, action)


if __name__ == "__main__":
    cli()
