"""
Tests for the command-line interface.
"""

import json
from unittest import mock

import pytest
from click.testing import CliRunner

from ormscan import __version__
from ormscan.cli import cli
from ormscan.core.config import Config
from ormscan.utils.validation import validate_batch_size, validate_glob, validate_path

ENTITY_CODE = "@Entity()\nexport class User {}\n"

SERVICE_CODE = """export async function byName(repository: Repository<User>, name: string) {
  return repository.findOneBy({ name });
}
"""


@pytest.fixture(autouse=True)
def isolated_config():
    with mock.patch("ormscan.cli.setup_logging"), \
            mock.patch("ormscan.core.config.load_dotenv"):
        yield
    Config.reset()


@pytest.fixture
def runner():
    return CliRunner()


@pytest.fixture
def project(tmp_path):
    root = tmp_path / "project"
    (root / "src").mkdir(parents=True)
    (root / "src" / "user.entity.ts").write_text(ENTITY_CODE)
    (root / "src" / "user.service.ts").write_text(SERVICE_CODE)
    return root


class TestScanCommand:
    """Tests for ``ormscan scan``."""

    def test_scan(self, runner, project, tmp_path):
        output = tmp_path / "messages.json"

        result = runner.invoke(cli, ["scan", str(project), "-o", str(output)])

        assert result.exit_code == 0, result.output
        assert f"Wrote 2 results for 2 files to {output}" in result.output

        with open(output) as f:
            data = json.load(f)
        assert [r["message"]["kind"] for r in data["results"]] == ["entity", "method"]
        assert data["results"][1]["message"]["subjectTypes"] == ["Repository<User>"]

    def test_text_summary(self, runner, project, tmp_path):
        output = tmp_path / "messages.json"

        result = runner.invoke(
            cli, ["scan", str(project), "-o", str(output), "--format", "text"]
        )

        assert result.exit_code == 0, result.output
        assert "ORM USAGE SUMMARY" in result.output
        assert "findOneBy" in result.output

    def test_options_override_config(self, runner, project, tmp_path):
        output = tmp_path / "messages.json"

        result = runner.invoke(cli, [
            "scan", str(project),
            "-o", str(output),
            "--include", "src/*.service.ts",
            "--type-resolver", "any",
            "--batch", "1",
            "--workers", "1",
        ])

        assert result.exit_code == 0, result.output
        with open(output) as f:
            data = json.load(f)
        assert data["doneFiles"] == ["src/user.service.ts"]
        assert data["results"][0]["message"]["subjectTypes"] == ["any"]

    def test_config_file(self, runner, project, tmp_path):
        output = tmp_path / "from-config.json"
        config_path = tmp_path / "ormscan.json"
        config_path.write_text(json.dumps({
            "discovery": {"exclude": "**/*.entity.ts"},
            "output": {"output_path": str(output)},
        }))

        result = runner.invoke(cli, ["scan", str(project), "-c", str(config_path)])

        assert result.exit_code == 0, result.output
        with open(output) as f:
            assert json.load(f)["doneFiles"] == ["src/user.service.ts"]

    def test_continue(self, runner, project, tmp_path):
        output = tmp_path / "messages.json"
        output.write_text(json.dumps({"results": [], "doneFiles": ["src/user.entity.ts"]}))

        result = runner.invoke(cli, ["scan", str(project), "-o", str(output), "--continue"])

        assert result.exit_code == 0, result.output
        with open(output) as f:
            data = json.load(f)
        assert [r["message"]["kind"] for r in data["results"]] == ["method"]
        assert data["doneFiles"] == ["src/user.entity.ts", "src/user.service.ts"]

    def test_malformed_output_when_continuing(self, runner, project, tmp_path):
        output = tmp_path / "messages.json"
        output.write_text("{")

        result = runner.invoke(cli, ["scan", str(project), "-o", str(output), "--continue"])

        assert result.exit_code == 1
        assert "Error:" in result.output

    def test_missing_root(self, runner, tmp_path):
        result = runner.invoke(cli, ["scan", str(tmp_path / "missing")])

        assert result.exit_code == 1
        assert "Path does not exist" in result.output

    def test_invalid_glob(self, runner, project):
        result = runner.invoke(cli, ["scan", str(project), "--include", "src/{a,b"])

        assert result.exit_code == 1
        assert "Unbalanced braces" in result.output

    def test_negative_batch(self, runner, project):
        result = runner.invoke(cli, ["scan", str(project), "--batch=-1"])

        assert result.exit_code == 1
        assert "cannot be negative" in result.output

    def test_verbose_enables_debug_logging(self, runner, project, tmp_path):
        import ormscan.cli

        runner.invoke(cli, ["-v", "scan", str(project), "-o", str(tmp_path / "m.json")])

        ormscan.cli.setup_logging.assert_called_once_with(level="DEBUG", log_file=None)

    def test_verbose_from_config_file(self, runner, project, tmp_path):
        import ormscan.cli

        config_path = tmp_path / "ormscan.json"
        config_path.write_text(json.dumps({
            "verbose": True,
            "output": {"output_path": str(tmp_path / "m.json")},
        }))

        result = runner.invoke(cli, ["scan", str(project), "-c", str(config_path)])

        assert result.exit_code == 0, result.output
        ormscan.cli.setup_logging.assert_called_with(level="DEBUG", log_file=None)


class TestOtherCommands:
    """Tests for the inspection and configuration commands."""

    def test_inspect(self, runner, project):
        path = project / "src" / "user.service.ts"

        result = runner.invoke(cli, ["inspect", str(path)])

        assert result.exit_code == 0, result.output
        (entry,) = json.loads(result.output)
        assert entry["filePath"] == path.as_posix()
        assert entry["message"]["name"] == "findOneBy"
        assert [a["name"] for a in entry["message"]["attributes"]] == ["name"]

    def test_inspect_missing_file(self, runner, tmp_path):
        result = runner.invoke(cli, ["inspect", str(tmp_path / "missing.ts")])

        assert result.exit_code == 2

    def test_init(self, runner, tmp_path):
        path = tmp_path / "ormscan.json"

        result = runner.invoke(cli, ["init", "-o", str(path)])

        assert result.exit_code == 0, result.output
        with open(path) as f:
            data = json.load(f)
        assert data["discovery"]["include"] == "**/*.ts"
        assert data["output"]["output_path"] == "messages.json"

    def test_list_rules(self, runner):
        result = runner.invoke(cli, ["list-rules"])

        assert result.exit_code == 0
        assert "find-api: Reports all method calls of the repository API." in result.output
        assert "find-schema" in result.output

    def test_version(self, runner):
        result = runner.invoke(cli, ["--version"])

        assert __version__ in result.output


class TestValidation:
    """Tests for input validation helpers."""

    def test_validate_path(self, tmp_path):
        assert validate_path(str(tmp_path)) == (True, None)
        assert validate_path("")[0] is False
        assert validate_path(str(tmp_path / "missing"))[0] is False

        file_path = tmp_path / "a.ts"
        file_path.write_text("")
        assert "not a directory" in validate_path(str(file_path))[1]

    @pytest.mark.parametrize("pattern,valid", [
        ("**/*.ts", True),
        ("src/**/*.{ts,tsx}", True),
        ("", False),
        ("   ", False),
        ("/abs/**/*.ts", False),
        ("src/{a,b", False),
    ])
    def test_validate_glob(self, pattern, valid):
        assert validate_glob(pattern)[0] is valid

    def test_validate_batch_size(self):
        assert validate_batch_size(0) == (True, None)
        assert validate_batch_size(100) == (True, None)
        assert validate_batch_size(-1)[0] is False
