"""Main Typer application for the synckit CLI.

``synckit http <method>`` sends a request to a provider declared in the
configuration file and prints the decoded response as JSON on stdout.
"""

from __future__ import annotations

import json
import sys
from pathlib import Path
from typing import Any, Optional

import typer
from pydantic import ValidationError

from synckit.config import SyncConfig, load_config, load_environment_settings
from synckit.core.http import TransportError
from synckit.core.logging import LogConfig, LogEvents, LogFormat, UnifiedLogger
from synckit.sync.http_provider import ConfiguredHttpProvider

__all__ = ["app", "create_app", "run"]

ConfigOption = typer.Option(
    ...,
    "--config",
    "-c",
    envvar="SYNCKIT_CONFIG",
    help="Path to the YAML configuration file.",
)
ProviderOption = typer.Option(..., "--provider", "-p", help="Provider name from the configuration.")
EndpointOption = typer.Option(..., "--endpoint", "-e", help="Endpoint path relative to the provider base URL.")
QueryOption = typer.Option(None, "--query", "-q", help="Query parameter as FIELD=VALUE (repeatable).")
JsonOption = typer.Option(None, "--json", "-j", help="File with a JSON request body, or '-' for stdin.")
SetOption = typer.Option(None, "--set", help="Configuration override as KEY=VALUE (repeatable).")


def _parse_pairs(values: list[str] | None, option: str) -> dict[str, str]:
    """Parse repeated ``KEY=VALUE`` flags into a dictionary."""

    parsed: dict[str, str] = {}
    for item in values or []:
        if "=" not in item:
            msg = f"Invalid {option} format: {item}. Expected FIELD=VALUE"
            raise typer.BadParameter(msg)
        key, value = item.split("=", 1)
        if not key:
            msg = f"Invalid {option} format: {item}. Field name is empty"
            raise typer.BadParameter(msg)
        parsed[key] = value
    return parsed


def _read_body(source: str | None) -> Any:
    if source is None:
        return None
    try:
        text = sys.stdin.read() if source == "-" else Path(source).read_text(encoding="utf-8")
    except OSError as exc:
        msg = f"Cannot read request body from {source}: {exc}"
        raise typer.BadParameter(msg) from exc
    try:
        return json.loads(text)
    except json.JSONDecodeError as exc:
        msg = f"Request body in {source} is not valid JSON: {exc}"
        raise typer.BadParameter(msg) from exc


def _load(config_path: Path, set_overrides: list[str] | None) -> SyncConfig:
    try:
        environment = load_environment_settings().as_overrides()
        overrides = {
            f"{section}.{key}": value for section, values in environment.items() for key, value in values.items()
        }
        overrides.update(_parse_pairs(set_overrides, "--set"))
        config = load_config(config_path, overrides=overrides)
    except FileNotFoundError as exc:
        raise typer.BadParameter(str(exc)) from exc
    except (ValidationError, TypeError, ValueError) as exc:
        msg = f"Invalid configuration {config_path}: {exc}"
        raise typer.BadParameter(msg) from exc
    UnifiedLogger.configure(
        LogConfig(level=config.logging.level, format=LogFormat(config.logging.format))
    )
    return config


def _provider(config: SyncConfig, name: str) -> ConfiguredHttpProvider:
    try:
        return ConfiguredHttpProvider.from_config(config, name)
    except KeyError as exc:
        raise typer.BadParameter(str(exc.args[0] if exc.args else exc)) from exc


def _execute(
    method: str,
    *,
    config_path: Path,
    provider_name: str,
    endpoint: str,
    query: list[str] | None,
    body_source: str | None = None,
    paginate: bool = False,
    set_overrides: list[str] | None = None,
) -> None:
    params = _parse_pairs(query, "--query")
    body = _read_body(body_source)
    config = _load(config_path, set_overrides)
    provider = _provider(config, provider_name)
    log = UnifiedLogger.get(__name__).bind(component="cli", provider=provider_name)
    log.info(LogEvents.CLI_COMMAND_START, method=method, endpoint=endpoint, paginate=paginate)

    try:
        if method == "HEAD":
            response = provider.transport.issue_request(method, endpoint, params=params or None)
            result: Any = dict(response.headers)
        else:
            result = provider.fetch(method, endpoint, query=params or None, body=body, paginate=paginate)
    except TransportError as exc:
        log.error(LogEvents.CLI_COMMAND_ERROR, method=method, endpoint=endpoint, error=str(exc))
        typer.echo(f"Error: {exc}", err=True)
        raise typer.Exit(code=1) from exc
    finally:
        provider.transport.close()

    typer.echo(json.dumps(result, indent=2, ensure_ascii=False, default=str))
    log.info(LogEvents.CLI_COMMAND_FINISH, method=method, endpoint=endpoint)


def create_http_app() -> typer.Typer:
    """Create the ``http`` command group."""

    http_app = typer.Typer(name="http", help="Send HTTP requests to a configured provider.", no_args_is_help=True)

    @http_app.command("get")
    def get_command(
        config: Path = ConfigOption,
        provider: str = ProviderOption,
        endpoint: str = EndpointOption,
        query: Optional[list[str]] = QueryOption,
        paginate: bool = typer.Option(False, "--paginate/--no-paginate", help="Follow pagination and merge pages."),
        set_overrides: Optional[list[str]] = SetOption,
    ) -> None:
        """Send a GET request."""
        _execute(
            "GET",
            config_path=config,
            provider_name=provider,
            endpoint=endpoint,
            query=query,
            paginate=paginate,
            set_overrides=set_overrides,
        )

    @http_app.command("head")
    def head_command(
        config: Path = ConfigOption,
        provider: str = ProviderOption,
        endpoint: str = EndpointOption,
        query: Optional[list[str]] = QueryOption,
        set_overrides: Optional[list[str]] = SetOption,
    ) -> None:
        """Send a HEAD request and print the response headers."""
        _execute(
            "HEAD",
            config_path=config,
            provider_name=provider,
            endpoint=endpoint,
            query=query,
            set_overrides=set_overrides,
        )

    def _register_body_command(method: str) -> None:
        def command(
            config: Path = ConfigOption,
            provider: str = ProviderOption,
            endpoint: str = EndpointOption,
            query: Optional[list[str]] = QueryOption,
            json_body: Optional[str] = JsonOption,
            set_overrides: Optional[list[str]] = SetOption,
        ) -> None:
            _execute(
                method,
                config_path=config,
                provider_name=provider,
                endpoint=endpoint,
                query=query,
                body_source=json_body,
                set_overrides=set_overrides,
            )

        command.__doc__ = f"Send a {method} request."
        http_app.command(method.lower())(command)

    for method in ("POST", "PUT", "PATCH", "DELETE"):
        _register_body_command(method)

    return http_app


def create_app() -> typer.Typer:
    """Create and configure the Typer application."""
    app = typer.Typer(
        name="synckit",
        help="synckit command-line interface.",
        add_completion=False,
        no_args_is_help=True,
    )
    app.add_typer(create_http_app(), name="http")
    return app


app = create_app()


def run() -> None:
    """Entry point for the ``synckit`` console script."""
    app()


if __name__ == "__main__":
    run()
