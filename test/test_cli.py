"""Tests for CLI functionality."""

import json

import autopxd
import pytest
from click.testing import CliRunner
from fakes import make_executable

from ibverbs_build import cli


@pytest.fixture
def fake_translate(monkeypatch):
    """Replace autopxd's translator so no C parser is needed."""
    calls = []

    def _translate(code, hdrname, **kwargs):
        calls.append(code)
        return f'cdef extern from "{hdrname}":\n    pass\n'

    monkeypatch.setattr(autopxd, "translate", _translate)
    return calls


@pytest.fixture
def runner(monkeypatch):
    for name in ("OUT_DIR", "CARGO_MANIFEST_DIR", "CC", "IBVERBS_INCLUDE_DIR"):
        monkeypatch.delenv(name, raising=False)
    return CliRunner()


def _directives(output: str) -> list[str]:
    return [line for line in output.splitlines() if line.startswith("cargo:")]


class TestVersion:
    """Tests for --version."""

    def test_version(self, runner) -> None:
        result = runner.invoke(cli, ["--version"])
        assert result.exit_code == 0
        assert result.output.strip()


class TestListGenerators:
    """Tests for --list-generators option."""

    def test_list_generators_human(self, runner) -> None:
        result = runner.invoke(cli, ["--list-generators"])
        assert result.exit_code == 0
        assert "autopxd" in result.output
        assert "bindgen" in result.output
        assert "Default: autopxd" in result.output

    def test_list_generators_json(self, runner) -> None:
        result = runner.invoke(cli, ["--list-generators", "--json"])
        assert result.exit_code == 0
        data = json.loads(result.output)
        names = [g["name"] for g in data["generators"]]
        assert names == ["autopxd", "bindgen"]
        for generator in data["generators"]:
            assert "available" in generator
            assert "default" in generator

    def test_json_without_list_generators_errors(self, runner) -> None:
        result = runner.invoke(cli, ["--json"])
        assert result.exit_code != 0
        assert "--json requires --list-generators" in result.output


class TestOptionValidation:
    """Tests for conflicting or invalid options."""

    def test_system_include_requires_static_probe(self, runner, out_dir) -> None:
        result = runner.invoke(cli, ["--out-dir", str(out_dir), "-S", "/usr/include"])
        assert result.exit_code == 1
        assert "--system-include requires --probe static" in result.output

    def test_probe_timeout_must_be_positive(self, runner, out_dir) -> None:
        result = runner.invoke(cli, ["--out-dir", str(out_dir), "--probe-timeout", "0"])
        assert result.exit_code == 1
        assert "--probe-timeout must be positive" in result.output

    def test_unavailable_generator(self, runner, out_dir, monkeypatch) -> None:
        monkeypatch.setenv("PATH", "")
        result = runner.invoke(cli, ["--out-dir", str(out_dir), "--generator", "bindgen"])
        assert result.exit_code == 1
        assert "bindgen generator required but not available" in result.output

    def test_missing_out_dir(self, runner) -> None:
        result = runner.invoke(cli, ["--probe", "static"])
        assert result.exit_code == 1
        assert "error: initialize: Output directory is not set (OUT_DIR)" in result.output
        assert _directives(result.output) == []


class TestBuild:
    """End-to-end runs through the CLI."""

    def test_success(self, runner, out_dir, ib_dir, fake_translate) -> None:
        result = runner.invoke(
            cli,
            ["--probe", "static", "-S", "/usr/include", "--include-dir", str(ib_dir)],
            env={"OUT_DIR": str(out_dir)},
        )
        assert result.exit_code == 0, result.output

        assert (out_dir / "ibverbs.h").read_text() == (
            "#include <infiniband/ib.h>\n" "#include <infiniband/verbs.h>\n"
        )
        assert (out_dir / "ibverbs.pxd").is_file()
        assert fake_translate == ["#include <infiniband/ib.h>\n#include <infiniband/verbs.h>\n"]

        lines = _directives(result.output)
        assert lines.count("cargo:rustc-link-lib=ibverbs") == 1
        assert f"cargo:rerun-if-changed={ib_dir}" in lines

    def test_include_dir_from_environment(self, runner, out_dir, ib_dir, fake_translate) -> None:
        result = runner.invoke(
            cli,
            ["--probe", "static"],
            env={"OUT_DIR": str(out_dir), "IBVERBS_INCLUDE_DIR": str(ib_dir)},
        )
        assert result.exit_code == 0, result.output
        assert f"cargo:rerun-if-changed={ib_dir}" in _directives(result.output)

    def test_compiler_probe_with_cc(self, runner, out_dir, ib_dir, fake_cc, fake_translate) -> None:
        result = runner.invoke(
            cli,
            ["--out-dir", str(out_dir), "--include-dir", str(ib_dir), "--debug"],
            env={"CC": str(fake_cc)},
        )
        assert result.exit_code == 0, result.output
        assert "include: /usr/lib/gcc/x86_64-linux-gnu/13/include" in result.output

    def test_missing_search_list_is_a_warning(self, runner, out_dir, ib_dir, tmp_path, fake_translate) -> None:
        cc = make_executable(tmp_path / "odd-cc", "cat > /dev/null\necho 'odd compiler' >&2\n")
        args = ["--out-dir", str(out_dir), "--include-dir", str(ib_dir), "--cc", str(cc)]

        result = runner.invoke(cli, args)
        assert result.exit_code == 0, result.output
        warnings = [line for line in _directives(result.output) if line.startswith("cargo:warning=")]
        assert len(warnings) == 1
        assert "include search list" in warnings[0]

        quiet = runner.invoke(cli, [*args, "--quiet"])
        assert quiet.exit_code == 0
        assert not any(line.startswith("cargo:warning=") for line in _directives(quiet.output))

    def test_missing_compiler_aborts(self, runner, out_dir, ib_dir, tmp_path, fake_translate) -> None:
        result = runner.invoke(
            cli,
            ["--out-dir", str(out_dir), "--include-dir", str(ib_dir), "--cc", str(tmp_path / "no-cc")],
        )
        assert result.exit_code == 1
        assert "error: toolchain-probe: C compiler not found" in result.output
        assert _directives(result.output) == []
        assert list(out_dir.iterdir()) == []
        assert fake_translate == []

    def test_generation_failure_aborts(self, runner, out_dir, ib_dir, monkeypatch) -> None:
        def failing_translate(code, hdrname, **kwargs):
            raise RuntimeError("C preprocessor failed")

        monkeypatch.setattr(autopxd, "translate", failing_translate)
        result = runner.invoke(cli, ["--out-dir", str(out_dir), "--probe", "static", "--include-dir", str(ib_dir)])
        assert result.exit_code == 1
        assert "error: binding-generation: autopxd failed" in result.output
        assert "cargo:rustc-link-lib=ibverbs" not in result.output
        assert list(out_dir.iterdir()) == []
