"""CLI entrypoint for ollamalink."""

from __future__ import annotations

import asyncio
import json
import logging

import click
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from ollamalink import __version__
from ollamalink.errors import ProviderError

console = Console()


@click.group()
@click.version_option(version=__version__, prog_name="ollamalink")
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging.")
def main(verbose: bool) -> None:
    """ollamalink: list and talk to models served by a local Ollama daemon."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
        force=True,
    )


def _config_options(f):  # type: ignore[no-untyped-def]
    f = click.option("--config", "config_path", default=None, type=click.Path(), help="YAML config path.")(f)
    f = click.option("--base-url", default=None, help="Override the Ollama base URL.")(f)
    f = click.option(
        "--docker/--no-docker", default=None, help="Rewrite localhost to host.docker.internal."
    )(f)
    return f


@main.command("models")
@_config_options
@click.option("--json", "as_json", is_flag=True, help="Print descriptors as JSON.")
def models(config_path: str | None, base_url: str | None, docker: bool | None, as_json: bool) -> None:
    """List models available on the Ollama daemon."""
    from ollamalink.adapters.ollama import OllamaProvider
    from ollamalink.config import load_config, merge_cli_overrides

    provider = OllamaProvider()
    try:
        cfg = merge_cli_overrides(load_config(config_path), base_url=base_url, docker=docker)
        descriptors = asyncio.run(
            provider.list_models(
                api_keys=cfg.api_keys,
                settings=cfg.providers.get(provider.name),
                server_env_override=cfg.env,
            )
        )
    except ProviderError as e:
        raise click.ClickException(str(e)) from e

    if as_json:
        click.echo(json.dumps([d.model_dump() for d in descriptors], indent=2))
        return
    if not descriptors:
        click.echo("No models found.")
        return

    table = Table(title="Ollama models")
    table.add_column("Name", style="cyan")
    table.add_column("Label")
    table.add_column("Max tokens", justify="right")
    for d in descriptors:
        table.add_row(d.name, d.label, str(d.max_token_allowed))
    console.print(table)


@main.command("chat")
@click.argument("model")
@click.argument("prompt")
@_config_options
@click.option("--num-ctx", default=None, type=int, help="Context window size.")
@click.option("--system", "system_prompt", default=None, help="Optional system message.")
@click.option("--temperature", default=None, type=float, help="Model temperature.")
@click.option("--seed", default=None, type=int, help="Sampling seed.")
def chat(
    model: str,
    prompt: str,
    config_path: str | None,
    base_url: str | None,
    docker: bool | None,
    num_ctx: int | None,
    system_prompt: str | None,
    temperature: float | None,
    seed: int | None,
) -> None:
    """Send a single prompt to MODEL and print the reply."""
    from ollamalink.adapters.ollama import OllamaProvider
    from ollamalink.config import load_config, merge_cli_overrides
    from ollamalink.types import Message, Role

    messages = []
    if system_prompt:
        messages.append(Message(role=Role.SYSTEM, content=system_prompt))
    messages.append(Message(role=Role.USER, content=prompt))

    try:
        cfg = merge_cli_overrides(
            load_config(config_path), base_url=base_url, docker=docker, num_ctx=num_ctx
        )
        with OllamaProvider().create_client(
            model,
            server_env=cfg.env,
            api_keys=cfg.api_keys,
            provider_settings=cfg.providers,
        ) as client:
            response = client.complete(messages, seed=seed, temperature=temperature)
    except ProviderError as e:
        raise click.ClickException(str(e)) from e

    click.echo(response.content)
