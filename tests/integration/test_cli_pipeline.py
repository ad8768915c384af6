"""End-to-end CLI runs over a generated tree with tiny and default buffers."""

import io

import pytest

from streamgrep.cli import main


pytestmark = pytest.mark.integration


@pytest.fixture
def log_tree(tmp_path):
    for part in range(3):
        lines = []
        for i in range(400):
            level = "ERROR" if (i + part) % 37 == 0 else "INFO"
            lines.append(f"{'  ' * (i % 3)}{level} part={part} seq={i}\n")
        (tmp_path / f"app-{part}.log").write_text("".join(lines), encoding="utf-8")
    return tmp_path


def grep(*argv):
    stdout, stderr = io.StringIO(), io.StringIO()
    code = main(list(argv), stdout=stdout, stderr=stderr)
    return code, stdout.getvalue(), stderr.getvalue()


@pytest.mark.parametrize("flags", [["-n"], ["-C", "2"], ["-c"], ["-l"]])
def test_small_buffer_output_is_identical(log_tree, flags):
    expected = grep(*flags, "ERROR", str(log_tree))
    actual = grep(*flags, "--buffer-size", "512", "ERROR", str(log_tree))

    assert expected[0] == 0
    assert actual == expected


def test_line_numbers_match_file_contents(log_tree):
    _, out, _ = grep("-n", "-h", "ERROR part=1", str(log_tree / "app-1.log"))

    lines = (log_tree / "app-1.log").read_text(encoding="utf-8").splitlines()
    for row in out.splitlines():
        number, text = row.split(":", 1)
        assert lines[int(number) - 1] == text


def test_global_limit_spans_files(log_tree):
    code, out, err = grep("-m", "15", "ERROR", str(log_tree))

    assert code == 0
    assert len(out.splitlines()) == 15
    assert "match limit" in err
