"""Typer based command line entry points for buyerlookup."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

import typer

from buyerlookup.core.errors import BuyerLookupError, RefreshInProgressError
from buyerlookup.core.logger import get_logger, set_level
from buyerlookup.core.profiles import DEFAULT_PROFILE, load_profiles
from buyerlookup.services.feed import ExportFeedClient, resolve_config
from buyerlookup.services.lookup import (
    ControllerView,
    QueryResult,
    RefreshController,
    RefreshState,
)

REFRESH_COMMANDS = {":r", ":refresh"}
QUIT_COMMANDS = {":q", ":quit", ":exit"}
MISSING = "N/A"

app = typer.Typer(help="Look up purchaser reference codes in the sales export.")


@app.callback()
def main_callback(
    log_level: str = typer.Option(
        "INFO",
        "--log-level",
        help="Set global logging level (e.g. DEBUG/INFO/WARNING).",
    ),
) -> None:
    """Configure global CLI behaviour before executing commands."""

    level_value = getattr(logging, log_level.upper(), None)
    if not isinstance(level_value, int):
        raise typer.BadParameter(f"Unknown log level: {log_level}")
    set_level(level_value)


def _build_controller(profile: str) -> RefreshController:
    return RefreshController.from_profile(profile)


def _build_client(profile: str) -> ExportFeedClient:
    return ExportFeedClient(resolve_config(profile))


def _handle_error(exc: Exception) -> None:
    get_logger().error("buyerlookup command failed: %s", exc, exc_info=True)
    typer.secho(f"Error: {exc}", fg=typer.colors.RED)
    raise typer.Exit(code=1)


def _render_result(result: QueryResult) -> None:
    if not len(result):
        typer.secho("Nenhum resultado encontrado", bold=True)
        typer.echo(f'Não encontramos nenhuma transação para o e-mail "{result.term}"')
        return
    typer.secho(f"Resultados Encontrados ({len(result)})", bold=True)
    for record in result:
        typer.echo("-" * 40)
        typer.echo(f"Código Referência: {record.reference_code or MISSING}")
        typer.echo(f"Nome Comprador:    {record.purchaser_name or MISSING}")
        typer.echo(f"E-mail:            {record.purchaser_email}")


def _refresh(controller: RefreshController) -> ControllerView:
    try:
        view = controller.refresh()
    except RefreshInProgressError as exc:
        typer.secho(str(exc), fg=typer.colors.YELLOW)
        return controller.view()
    if view.state is RefreshState.FAILED:
        typer.secho(view.error_message or "Refresh failed", fg=typer.colors.RED)
    return view


def _export(result: QueryResult, destination: Path) -> None:
    frame = result.to_frame()
    destination.parent.mkdir(parents=True, exist_ok=True)
    if destination.suffix.lower() == ".xlsx":
        frame.to_excel(destination, index=False)
    else:
        frame.to_csv(destination, sep=";", index=False)
    typer.echo(f"Exported {len(frame.index)} rows to {destination}")


@app.command("search")
def cmd_search(
    email: str = typer.Argument(..., help="Purchaser e-mail (or part of it)"),
    profile: str = typer.Option(DEFAULT_PROFILE, "--profile", help="Lookup profile name"),
    export: Optional[Path] = typer.Option(None, "--export", dir_okay=False, help="Write matches to CSV/XLSX"),
) -> None:
    """Load the export once and print the matching purchasers."""

    if not email.strip():
        raise typer.BadParameter("e-mail must not be empty")

    try:
        controller = _build_controller(profile)
    except BuyerLookupError as exc:
        _handle_error(exc)
    try:
        view = controller.refresh()
        if view.state is RefreshState.FAILED:
            typer.secho(view.error_message or "Refresh failed", fg=typer.colors.RED)
            raise typer.Exit(code=1)
        result = controller.submit_query(email)
        _render_result(result)
        if export is not None:
            _export(result, export)
    except (BuyerLookupError, OSError) as exc:
        _handle_error(exc)
    finally:
        controller.close()


@app.command("interactive")
def cmd_interactive(
    profile: str = typer.Option(DEFAULT_PROFILE, "--profile", help="Lookup profile name"),
) -> None:
    """Prompt for e-mails repeatedly; ``:r`` reloads the export, ``:q`` quits."""

    try:
        controller = _build_controller(profile)
    except BuyerLookupError as exc:
        _handle_error(exc)
    try:
        _refresh(controller)
        while True:
            view = controller.view()
            typer.echo(f"Dados carregados: {view.loaded_label}")
            raw = typer.prompt(
                "E-mail do comprador (:r atualizar, :q sair)",
                default="",
                show_default=False,
            )
            command = raw.strip()
            if command in QUIT_COMMANDS:
                break
            if command in REFRESH_COMMANDS:
                view = _refresh(controller)
                if view.last_result is not None:
                    _render_result(view.last_result)
                continue
            if not command:
                continue
            _render_result(controller.submit_query(command))
    finally:
        controller.close()


@app.command("profiles")
def cmd_profiles() -> None:
    """List the configured lookup profiles."""

    try:
        profiles = load_profiles()
    except BuyerLookupError as exc:
        _handle_error(exc)
    for key, profile in profiles.items():
        marker = "*" if key == DEFAULT_PROFILE else " "
        typer.echo(f"{marker} {key}: {profile.display_name}")


@app.command("check")
def cmd_check(
    email: str = typer.Argument(..., help="Exact e-mail to count in the raw export"),
    profile: str = typer.Option(DEFAULT_PROFILE, "--profile", help="Lookup profile name"),
) -> None:
    """Fetch the raw export and count literal occurrences of an e-mail."""

    try:
        client = _build_client(profile)
    except BuyerLookupError as exc:
        _handle_error(exc)
    try:
        payload = client.fetch()
        text = payload.content.decode("utf-8", errors="replace")
        typer.echo(f"Total length: {len(text)}")
        typer.echo(f"Matches for {email}: {text.count(email)}")
    except BuyerLookupError as exc:
        _handle_error(exc)
    finally:
        client.close()


if __name__ == "__main__":
    app()
