#!/usr/bin/env python3
"""
TFE CLI
Preview and generate FAQ entries from resolved tickets
"""

import json
from datetime import datetime
from typing import Optional

import click
import structlog

from .errors import FAQEngineError
from .factory import build_engine

log = structlog.get_logger()


def _options(min_cluster_size: int, max_clusters: int, similarity_threshold: float,
             start_date: Optional[datetime], end_date: Optional[datetime],
             categories: tuple[str, ...]) -> dict:
    options = {
        "min_cluster_size": min_cluster_size,
        "max_clusters": max_clusters,
        "similarity_threshold": similarity_threshold,
        "categories": list(categories) or None,
    }
    if start_date or end_date:
        if not (start_date and end_date):
            raise click.BadParameter("--start-date and --end-date must be given together")
        options["date_range"] = {"start_date": start_date, "end_date": end_date}
    return options


def generation_options(func):
    """Shared clustering options for preview/generate"""
    decorators = [
        click.option("--app-id", "-a", required=True, help="Application ID"),
        click.option("--min-cluster-size", default=3, show_default=True, type=int),
        click.option("--max-clusters", default=20, show_default=True, type=int),
        click.option("--similarity-threshold", default=0.7, show_default=True, type=float),
        click.option("--start-date", type=click.DateTime(), default=None, help="Corpus start (created_at)"),
        click.option("--end-date", type=click.DateTime(), default=None, help="Corpus end (created_at)"),
        click.option("--category", "categories", multiple=True, help="Restrict to category (repeatable)"),
        click.option("--seed", type=int, default=None, help="Seed for centroid initialization"),
        click.option("--timeout", type=float, default=None, help="Abort the run after N seconds"),
        click.option("--ollama-url", default=None, help="Ollama URL (default: from OLLAMA_URL env)"),
        click.option("--local", "use_local", is_flag=True, help="Use local sentence-transformers"),
        click.option("--output", "-o", default=None, help="Write result JSON to this file"),
    ]
    for decorator in reversed(decorators):
        func = decorator(func)
    return func


def _write_json(model, output: Optional[str]) -> None:
    """Write result JSON to a file, or stdout when no file is given"""
    payload = json.dumps(model.model_dump(mode="json", by_alias=True), indent=2, ensure_ascii=False)
    if output:
        with open(output, "w", encoding="utf-8") as f:
            f.write(payload)
        click.echo(f"Wrote {output}")
    else:
        click.echo(payload)


@click.group()
def main():
    """Ticket FAQ Engine"""


@main.command()
@generation_options
def preview(app_id, min_cluster_size, max_clusters, similarity_threshold, start_date, end_date,
            categories, seed, timeout, ollama_url, use_local, output):
    """Cluster resolved tickets and print FAQ candidates (nothing is persisted)."""
    options = _options(min_cluster_size, max_clusters, similarity_threshold, start_date, end_date, categories)
    engine = build_engine(ollama_url=ollama_url, use_local=use_local or None)
    try:
        result = engine.preview(app_id, options, timeout=timeout, seed=seed)
    except FAQEngineError as e:
        raise click.ClickException(e.message)
    log.info("Preview complete", app_id=app_id, generated=result.statistics.generated_faqs)
    _write_json(result, output)


@main.command()
@generation_options
@click.option("--cluster-id", "cluster_ids", multiple=True, help="Only create these clusters (repeatable)")
@click.option("--publish", is_flag=True, help="Publish every created FAQ")
@click.option("--auto-publish-threshold", type=click.FloatRange(0.0, 1.0), default=None,
              help="Publish FAQs whose confidence reaches this value")
def generate(app_id, min_cluster_size, max_clusters, similarity_threshold, start_date, end_date,
             categories, seed, timeout, ollama_url, use_local, output, cluster_ids, publish, auto_publish_threshold):
    """Cluster resolved tickets and create FAQ entries."""
    options = _options(min_cluster_size, max_clusters, similarity_threshold, start_date, end_date, categories)
    engine = build_engine(ollama_url=ollama_url, use_local=use_local or None)
    try:
        result = engine.materialize(
            app_id,
            options,
            cluster_ids=list(cluster_ids) or None,
            is_published=publish,
            auto_publish_threshold=auto_publish_threshold,
            timeout=timeout,
            seed=seed,
        )
    except FAQEngineError as e:
        raise click.ClickException(e.message)
    log.info("Generation complete", app_id=app_id, success=result.statistics.success,
             failed=result.statistics.failed)
    _write_json(result, output)


@main.command()
@click.option("--host", default="0.0.0.0", show_default=True)
@click.option("--port", default=8000, show_default=True, type=int)
def serve(host, port):
    """Run the HTTP API."""
    import uvicorn

    uvicorn.run("services.api.main:app", host=host, port=port)


if __name__ == "__main__":
    main()
