"""Tests for structured errors and their CLI envelopes."""

import json

import pytest

from kami.cli import cli
from kami.errors import ErrorCode, ExitCode, KamiError, format_error_json


class TestKamiError:
    @pytest.mark.parametrize(
        ("error", "exit_code"),
        [
            (KamiError.article_not_found("x"), ExitCode.NOT_FOUND),
            (KamiError.template_not_found("x"), ExitCode.NOT_FOUND),
            (KamiError.vault_not_found("x"), ExitCode.NOT_FOUND),
            (KamiError.ambiguous_slug("x", ["local:a"]), ExitCode.AMBIGUOUS),
            (KamiError.validation_error("bad"), ExitCode.GENERAL_ERROR),
            (KamiError.scope_not_found(), ExitCode.GENERAL_ERROR),
            (KamiError.invalid_frontmatter("oops"), ExitCode.GENERAL_ERROR),
        ],
    )
    def test_exit_codes(self, error, exit_code):
        assert error.exit_code == exit_code

    def test_json_envelope_with_candidates(self):
        error = KamiError.ambiguous_slug("same", ["local:one", "global:two"])

        payload = json.loads(error.to_json())

        assert payload == {
            "ok": False,
            "data": None,
            "error": {
                "code": "AMBIGUOUS_SLUG",
                "message": "Slug 'same' is ambiguous",
                "candidates": ["local:one", "global:two"],
            },
        }

    def test_json_envelope_without_candidates(self):
        payload = json.loads(KamiError.article_not_found("x").to_json())
        assert "candidates" not in payload["error"]

    def test_scope_not_found_hints_at_init(self):
        assert "kami init" in KamiError.scope_not_found().message

    def test_format_error_json(self):
        payload = json.loads(format_error_json(ErrorCode.IO_ERROR, "disk full"))
        assert payload["error"] == {"code": "IO_ERROR", "message": "disk full"}


class TestScopeNotFoundFromCli:
    def test_local_scope_required(self, runner, project_dir):
        result = runner.invoke(cli, ["list", "--scope", "local", "--json"])

        assert result.exit_code == ExitCode.GENERAL_ERROR
        assert json.loads(result.stdout)["error"]["code"] == "SCOPE_NOT_FOUND"
