"""Click CLI for local classification, enrichment and webhook registration."""

from __future__ import annotations

import asyncio
import json
import sys

import click

from src.classifier.classifier import MessageClassifier, Vocabulary
from src.config import ConfigError, webhook_registration_from_env
from src.enricher.enricher import ProductEnricher
from src.enricher.extraction import EnrichmentConfig
from src.webhook.telegram import DeliveryError, TelegramRelay


@click.group()
@click.option(
    "--vocabulary", default="config/vocabulary.json", help="Path to vocabulary JSON.",
)
@click.option(
    "--enrichment", default="config/enrichment.json", help="Path to enrichment JSON.",
)
@click.pass_context
def cli(ctx: click.Context, vocabulary: str, enrichment: str) -> None:
    """Shop assistant webhook tools."""
    ctx.ensure_object(dict)
    ctx.obj["vocabulary"] = vocabulary
    ctx.obj["enrichment"] = enrichment


@cli.command()
@click.argument("text")
@click.pass_context
def classify(ctx: click.Context, text: str) -> None:
    """Classify a message and print the result."""
    classifier = MessageClassifier(Vocabulary.from_file(ctx.obj["vocabulary"]))
    click.echo(classifier.classify(text).model_dump_json(indent=2))


@cli.command()
@click.argument("text")
@click.option("--timeout", default=8.0, show_default=True, help="Fetch timeout in seconds.")
@click.pass_context
def enrich(ctx: click.Context, text: str, timeout: float) -> None:
    """Classify and enrich a message, printing the context (hits the network)."""
    classifier = MessageClassifier(Vocabulary.from_file(ctx.obj["vocabulary"]))
    enricher = ProductEnricher(
        EnrichmentConfig.from_file(ctx.obj["enrichment"]), timeout_seconds=timeout,
    )
    classification = classifier.classify(text)
    context = asyncio.run(enricher.enrich(text, classification))
    click.echo(json.dumps({
        "classification": classification.model_dump(),
        "context": context.model_dump(exclude_none=True),
    }, indent=2, ensure_ascii=False))


@cli.command("set-webhook")
@click.argument("url")
def set_webhook(url: str) -> None:
    """Register URL as the bot's webhook (reads TELEGRAM_BOT_TOKEN, WEBHOOK_SECRET)."""
    try:
        bot_token, webhook_secret = webhook_registration_from_env()
    except ConfigError as exc:
        click.echo(str(exc), err=True)
        sys.exit(2)
    relay = TelegramRelay(bot_token=bot_token, webhook_secret=webhook_secret)
    try:
        asyncio.run(relay.set_webhook(url))
    except DeliveryError as exc:
        click.echo(f"setWebhook failed: {exc}", err=True)
        sys.exit(1)
    click.echo(f"Webhook set: {url}")
