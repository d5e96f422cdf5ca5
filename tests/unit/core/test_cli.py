"""
Tests for the command-line interface
"""
import click
import pytest
from click.testing import CliRunner

from core import cli as cli_module
from core.cli import cli, parse_parameters

pytestmark = [pytest.mark.unit]


@pytest.fixture
def runner():
    return CliRunner()


@pytest.fixture
def designs_dir(tmp_path, monkeypatch):
    directory = tmp_path / "designs"
    monkeypatch.setattr(cli_module.settings, "designs_dir", directory)
    return directory


def test_parse_parameters():
    assert parse_parameters(("since=2024-01-01", "status=open=1")) == {"since": "2024-01-01", "status": "open=1"}


def test_parse_parameters_rejects_missing_value():
    with pytest.raises(click.BadParameter):
        parse_parameters(("since",))


class TestCommands:
    def test_create_sample_and_render(self, runner, database_url, designs_dir, tmp_path):
        result = runner.invoke(
            cli,
            ["create-sample", "--url", database_url, "--driver", "sqlite", "--query", "SELECT A, B, C FROM MOV_RECEPCAO"],
        )
        assert result.exit_code == 0, result.output
        design_ref = result.output.strip()
        assert design_ref.startswith("recepcao-report-")

        output = tmp_path / "out" / "recepcao.html"
        result = runner.invoke(cli, ["render", design_ref, "--output", str(output)])
        assert result.exit_code == 0, result.output
        assert "3 row(s)" in result.output
        assert "Costa &amp; Filhos" in output.read_text(encoding="utf-8")

    def test_create_sample_to_file_and_render_pdf(self, runner, database_url, tmp_path):
        design_file = tmp_path / "sample.json"
        result = runner.invoke(
            cli,
            [
                "create-sample", "--url", database_url, "--driver", "sqlite",
                "--query", "SELECT A, B, C FROM MOV_RECEPCAO", "--output", str(design_file),
            ],
        )
        assert result.exit_code == 0, result.output

        output = tmp_path / "sample.pdf"
        result = runner.invoke(cli, ["render", str(design_file), "--output", str(output), "--landscape"])
        assert result.exit_code == 0, result.output
        assert output.read_bytes().startswith(b"%PDF-")

    def test_render_reports_structured_error(self, runner, designs_dir, tmp_path):
        result = runner.invoke(cli, ["render", "missing-design", "--output", str(tmp_path / "x.pdf")])
        assert result.exit_code == 1
        assert "NOT_FOUND" in result.output

    def test_list_designs(self, runner, database_url, designs_dir):
        assert "No designs stored" in runner.invoke(cli, ["list-designs"]).output

        runner.invoke(cli, ["create-sample", "--url", database_url, "--driver", "sqlite"])
        result = runner.invoke(cli, ["list-designs"])
        assert "recepcao-report" in result.output
        assert "RecepcaoTable" in result.output
