"""Shared pytest fixtures for ibverbs-build tests."""

import os
from pathlib import Path

import pytest
from fakes import GCC_OUTPUT, make_executable

from ibverbs_build.model import BuildState


@pytest.fixture
def out_dir(tmp_path: Path) -> Path:
    """Empty build output directory."""
    path = tmp_path / "out"
    path.mkdir()
    return path


@pytest.fixture
def state(tmp_path: Path, out_dir: Path) -> BuildState:
    """State right after initialization."""
    return BuildState(project_path=tmp_path, out_path=out_dir)


@pytest.fixture
def make_header_dir(tmp_path: Path):
    """Factory creating an ``infiniband`` directory holding the given files."""

    def _make(name: str, files: tuple[str, ...]) -> Path:
        path = tmp_path / "include" / name / "infiniband"
        path.mkdir(parents=True)
        for file in files:
            (path / file).write_text(f"/* {file} */\n", encoding="utf-8")
        return path

    return _make


@pytest.fixture
def ib_dir(make_header_dir) -> Path:
    """A genuine-looking ibverbs installation with two headers."""
    return make_header_dir("good", ("verbs.h", "ib.h"))


@pytest.fixture
def fake_cc(tmp_path: Path) -> Path:
    """A compiler stand-in that prints GCC's include search list on stderr."""
    output = tmp_path / "gcc-output.txt"
    output.write_text(GCC_OUTPUT, encoding="utf-8")
    return make_executable(
        tmp_path / "fake-cc",
        f"""\
        cat > /dev/null
        cat {output} >&2
        exit 1
        """,
    )


@pytest.fixture
def bin_dir(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """A directory prepended to PATH for fake executables."""
    path = tmp_path / "bin"
    path.mkdir()
    monkeypatch.setenv("PATH", f"{path}{os.pathsep}{os.environ.get('PATH', '')}")
    return path
