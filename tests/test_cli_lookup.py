"""CLI tests for the purchaser lookup commands."""

from __future__ import annotations

from datetime import datetime, timezone
from pathlib import Path

import pandas as pd
import pytest
from typer.testing import CliRunner

from buyerlookup import cli
from buyerlookup.core.errors import FetchError
from buyerlookup.services.feed.models import FeedPayload
from buyerlookup.services.lookup.controller import RefreshController

EXPORT = (
    "Documento;Código Referência;Nome Comprador;E-mail Comprador\n"
    "1;REF-1;Ana;ana@x.com\n"
    "2;;;ana@x.com\n"
    "3;REF-3;Bia;bia@x.com\n"
)


class ScriptedSource:
    def __init__(self, steps: list[str | Exception]) -> None:
        self._steps = steps
        self.calls = 0
        self.closed = False

    def fetch(self) -> FeedPayload:
        self.calls += 1
        step = self._steps.pop(0)
        if isinstance(step, Exception):
            raise step
        return FeedPayload(
            content=step.encode("utf-8"),
            status_code=200,
            url="https://example.com/export.csv",
            fetched_at=datetime(2026, 2, 10, tzinfo=timezone.utc),
        )

    def close(self) -> None:
        self.closed = True


@pytest.fixture
def cli_runner() -> CliRunner:
    return CliRunner()


def _install(monkeypatch: pytest.MonkeyPatch, steps: list[str | Exception]) -> ScriptedSource:
    source = ScriptedSource(steps)
    monkeypatch.setattr(cli, "_build_controller", lambda profile: RefreshController(source))
    return source


def test_search_prints_reference_and_name(cli_runner: CliRunner, monkeypatch: pytest.MonkeyPatch) -> None:
    source = _install(monkeypatch, [EXPORT])

    result = cli_runner.invoke(cli.app, ["search", "BIA@X.COM"])

    assert result.exit_code == 0, result.output
    assert "Resultados Encontrados (1)" in result.output
    assert "Código Referência: REF-3" in result.output
    assert "Nome Comprador:    Bia" in result.output
    assert source.closed


def test_search_shows_na_for_empty_values(cli_runner: CliRunner, monkeypatch: pytest.MonkeyPatch) -> None:
    _install(monkeypatch, [EXPORT])

    result = cli_runner.invoke(cli.app, ["search", "ana@"])

    assert result.exit_code == 0, result.output
    assert "Resultados Encontrados (2)" in result.output
    assert "Código Referência: N/A" in result.output


def test_search_without_hits(cli_runner: CliRunner, monkeypatch: pytest.MonkeyPatch) -> None:
    _install(monkeypatch, [EXPORT])

    result = cli_runner.invoke(cli.app, ["search", "nobody@x.com"])

    assert result.exit_code == 0, result.output
    assert "Nenhum resultado encontrado" in result.output
    assert '"nobody@x.com"' in result.output


def test_search_reports_fetch_failure(cli_runner: CliRunner, monkeypatch: pytest.MonkeyPatch) -> None:
    _install(
        monkeypatch,
        [FetchError("Failed to fetch CSV file: 500 Internal Server Error", status_code=500)],
    )

    result = cli_runner.invoke(cli.app, ["search", "ana@x.com"])

    assert result.exit_code == 1
    assert "Failed to fetch CSV file: 500 Internal Server Error." in result.output


def test_search_rejects_blank_email(cli_runner: CliRunner, monkeypatch: pytest.MonkeyPatch) -> None:
    source = _install(monkeypatch, [EXPORT])

    result = cli_runner.invoke(cli.app, ["search", "   "])

    assert result.exit_code != 0
    assert source.calls == 0


def test_search_exports_matches(
    cli_runner: CliRunner, monkeypatch: pytest.MonkeyPatch, tmp_path: Path
) -> None:
    _install(monkeypatch, [EXPORT])
    target = tmp_path / "out" / "matches.csv"

    result = cli_runner.invoke(cli.app, ["search", "ana@x.com", "--export", str(target)])

    assert result.exit_code == 0, result.output
    frame = pd.read_csv(target, sep=";", dtype=str, keep_default_na=False)
    assert frame["Documento"].tolist() == ["1", "2"]
    assert frame["Código Referência"].tolist() == ["REF-1", ""]


def test_interactive_ignores_blank_input_and_requeries_on_refresh(
    cli_runner: CliRunner, monkeypatch: pytest.MonkeyPatch
) -> None:
    updated = EXPORT + "4;REF-4;Bia Nova;bia@x.com\n"
    source = _install(monkeypatch, [EXPORT, updated])

    result = cli_runner.invoke(cli.app, ["interactive"], input="\nbia@x.com\n:r\n:q\n")

    assert result.exit_code == 0, result.output
    assert "Dados carregados:" in result.output
    assert "Resultados Encontrados (1)" in result.output
    assert "Resultados Encontrados (2)" in result.output
    assert "REF-4" in result.output
    assert source.calls == 2
    assert source.closed


def test_interactive_keeps_running_after_failed_refresh(
    cli_runner: CliRunner, monkeypatch: pytest.MonkeyPatch
) -> None:
    _install(monkeypatch, [FetchError("Failed to fetch CSV file: 502 Bad Gateway"), EXPORT])

    result = cli_runner.invoke(cli.app, ["interactive"], input=":r\nana@x.com\n:q\n")

    assert result.exit_code == 0, result.output
    assert "Failed to fetch CSV file: 502 Bad Gateway." in result.output
    assert "not yet loaded" in result.output
    assert "Resultados Encontrados (2)" in result.output


def test_check_counts_literal_occurrences(cli_runner: CliRunner, monkeypatch: pytest.MonkeyPatch) -> None:
    source = ScriptedSource([EXPORT])
    monkeypatch.setattr(cli, "_build_client", lambda profile: source)

    result = cli_runner.invoke(cli.app, ["check", "ana@x.com"])

    assert result.exit_code == 0, result.output
    assert f"Total length: {len(EXPORT)}" in result.output
    assert "Matches for ana@x.com: 2" in result.output
    assert source.closed


def test_unknown_log_level_is_rejected(cli_runner: CliRunner) -> None:
    result = cli_runner.invoke(cli.app, ["--log-level", "LOUD", "check", "a@x.com"])

    assert result.exit_code != 0


def test_profiles_lists_display_names(cli_runner: CliRunner) -> None:
    result = cli_runner.invoke(cli.app, ["profiles"])

    assert result.exit_code == 0, result.output
    assert "* default: PagBank - O que vendi" in result.output
    assert "  proxy: Local CSV proxy" in result.output
