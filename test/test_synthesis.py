"""Tests for umbrella header synthesis."""

from dataclasses import replace

import pytest

from ibverbs_build.errors import HeaderWriteError
from ibverbs_build.synthesis import atomic_write, render_umbrella_header, write_umbrella_header


class TestRenderUmbrellaHeader:
    """Tests for the umbrella header text."""

    def test_one_line_per_header(self) -> None:
        assert render_umbrella_header(["ib.h", "verbs.h"]) == (
            "#include <infiniband/ib.h>\n" "#include <infiniband/verbs.h>\n"
        )

    def test_order_is_kept(self) -> None:
        """Ordering is the caller's job; the renderer does not re-sort."""
        text = render_umbrella_header(["verbs.h", "ib.h"])
        assert text.splitlines() == ["#include <infiniband/verbs.h>", "#include <infiniband/ib.h>"]

    def test_no_duplicates(self) -> None:
        text = render_umbrella_header(["ib.h", "verbs.h", "ib.h"])
        assert text.splitlines() == ["#include <infiniband/ib.h>", "#include <infiniband/verbs.h>"]

    def test_empty(self) -> None:
        assert render_umbrella_header([]) == ""

    def test_custom_subdir(self) -> None:
        assert render_umbrella_header(["rdma_cma.h"], subdir="rdma") == "#include <rdma/rdma_cma.h>\n"

    def test_pure(self) -> None:
        headers = ["a.h", "b.h"]
        assert render_umbrella_header(headers) == render_umbrella_header(headers)
        assert headers == ["a.h", "b.h"]


class TestWriteUmbrellaHeader:
    """Tests for writing the umbrella header to the output directory."""

    def test_writes_into_out_dir(self, state, out_dir) -> None:
        state = replace(state, ib_headers=("ib.h", "verbs.h"))
        path = write_umbrella_header(state)
        assert path == out_dir / "ibverbs.h"
        assert path.read_text() == "#include <infiniband/ib.h>\n#include <infiniband/verbs.h>\n"

    def test_overwrites_previous_header(self, state, out_dir) -> None:
        (out_dir / "ibverbs.h").write_text("#include <stale.h>\n")
        path = write_umbrella_header(replace(state, ib_headers=("ib.h",)))
        assert path.read_text() == "#include <infiniband/ib.h>\n"

    def test_byte_identical_across_runs(self, state) -> None:
        state = replace(state, ib_headers=("ib.h", "verbs.h"))
        first = write_umbrella_header(state).read_bytes()
        second = write_umbrella_header(state).read_bytes()
        assert first == second

    def test_no_temporary_files_left(self, state, out_dir) -> None:
        write_umbrella_header(replace(state, ib_headers=("ib.h",)))
        assert sorted(p.name for p in out_dir.iterdir()) == ["ibverbs.h"]

    def test_write_failure_is_raised(self, state, tmp_path) -> None:
        state = replace(state, out_path=tmp_path / "missing", ib_headers=("ib.h",))
        with pytest.raises(HeaderWriteError, match="Cannot write umbrella header"):
            write_umbrella_header(state)

    def test_undecodable_header_name(self, state, out_dir) -> None:
        """A file name that is not UTF-8 arrives as surrogate escapes and cannot be written."""
        state = replace(state, ib_headers=("ib.h", "\udcffbad.h"))
        with pytest.raises(HeaderWriteError, match="Cannot write umbrella header"):
            write_umbrella_header(state)
        assert list(out_dir.iterdir()) == []


class TestAtomicWrite:
    """Tests for the temporary-file-and-rename writer."""

    def test_failed_write_keeps_old_content(self, tmp_path, monkeypatch) -> None:
        target = tmp_path / "file.txt"
        target.write_text("old")

        def broken_replace(src, dst):
            raise OSError("disk full")

        monkeypatch.setattr("ibverbs_build.synthesis.os.replace", broken_replace)
        with pytest.raises(OSError, match="disk full"):
            atomic_write(target, "new")
        assert target.read_text() == "old"
        assert [p.name for p in tmp_path.iterdir()] == ["file.txt"]
