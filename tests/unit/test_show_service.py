"""Unit tests for the service behind /show links."""

import pytest

from streamgrep.adapters.sources import archive_member_name
from streamgrep.service_layer.show_service import (
    HTML_MEDIA_TYPE,
    RAW_MEDIA_TYPE,
    ShowService,
    is_text,
    render_file,
)


pytestmark = pytest.mark.unit


@pytest.fixture
def service(sample_tree):
    return ShowService([str(sample_tree)])


class TestIsText:
    @pytest.mark.parametrize("data", [b"", b"plain\ttext\n", b"form\ffeed\n", "café\n".encode()])
    def test_text(self, data):
        assert is_text(data)

    @pytest.mark.parametrize("data", [b"ab\x00cd", b"\xff\xfe text", b"bell\x07", b"dos\r\n"])
    def test_binary(self, data):
        assert not is_text(data)

    def test_only_the_first_kilobyte_is_checked(self):
        assert is_text(b"a" * 1024 + b"\x00")

    def test_character_cut_at_the_limit_is_ignored(self):
        assert is_text(b"a" * 1023 + "é".encode())


class TestRenderFile:
    def test_lines_are_numbered_and_escaped(self):
        page = render_file("/src/a.txt", b"x < y\nsecond\n")

        assert '<span id="L1">     1  x &lt; y\n</span>' in page
        assert '<span id="L2">     2  second\n</span>' in page
        assert page.count("<span id=") == 2

    def test_last_line_without_newline(self):
        page = render_file("/src/a.txt", b"one\ntwo")

        assert '<span id="L2">     2  two\n</span>' in page

    def test_breadcrumbs_link_each_directory(self):
        page = render_file("/src/pkg/a.txt", b"")

        assert '/<a href="/show/src">src</a>/<a href="/show/src/pkg">pkg</a>' in page
        assert "<span" not in page


class TestResolve:
    def test_absolute_path_without_leading_slash(self, service, sample_tree):
        path = str(sample_tree / "pkg" / "alpha.py")

        assert service.resolve(path.lstrip("/")) == path

    def test_archive_member(self, service, sample_tree):
        archive = str(sample_tree / "bundle.zip")

        assert service.resolve(archive.lstrip("/") + ">inner/gamma.py") == archive_member_name(archive, "inner/gamma.py")

    def test_relative_root(self, sample_tree, monkeypatch):
        monkeypatch.chdir(sample_tree)

        assert ShowService(["."]).resolve("pkg/alpha.py") == "pkg/alpha.py"

    def test_outside_roots(self, sample_tree):
        service = ShowService([str(sample_tree / "pkg")])

        assert service.resolve(str(sample_tree / "bundle.zip").lstrip("/")) is None
        assert service.resolve(str(sample_tree / "pkg" / ".." / "bundle.zip").lstrip("/")) is None

    def test_missing(self, service, sample_tree):
        assert service.resolve(str(sample_tree / "nope.py").lstrip("/")) is None


class TestShow:
    def test_file(self, service, sample_tree):
        page = service.show(str(sample_tree / "pkg" / "beta.txt"))

        assert page.media_type == HTML_MEDIA_TYPE
        assert '<span id="L2">     2  TODO: beta\n</span>' in page.body

    def test_archive_member(self, service, sample_tree):
        page = service.show(str(sample_tree / "bundle.zip") + ">inner/gamma.py")

        assert '<span id="L2">     2      return alpha()\n</span>' in page.body
        assert "&gt;inner/gamma.py" in page.body

    def test_missing_archive_member(self, service, sample_tree):
        assert service.show(str(sample_tree / "bundle.zip") + ">inner/missing.py") is None

    def test_directory_listing_skips_hidden_entries(self, service, sample_tree):
        page = service.show(str(sample_tree))

        assert f'<a href="/show{sample_tree}/bundle.zip">bundle.zip</a>' in page.body
        assert f'<a href="/show{sample_tree}/pkg">pkg/</a>' in page.body
        assert ".hidden" not in page.body

    def test_archive_listing(self, service, sample_tree):
        page = service.show(str(sample_tree / "bundle.zip"))

        assert f'<a href="/show{sample_tree}/bundle.zip&gt;inner/gamma.py">inner/gamma.py</a>' in page.body
        assert "inner/readme.md" in page.body

    def test_binary_file_served_raw(self, service, sample_tree):
        (sample_tree / "blob.bin").write_bytes(b"\x00\x01binary")

        page = service.show(str(sample_tree / "blob.bin"))

        assert page.media_type == RAW_MEDIA_TYPE
        assert page.body == b"\x00\x01binary"

    def test_served_prefix_is_capped(self, sample_tree):
        page = ShowService([str(sample_tree)], max_bytes=5).show(str(sample_tree / "pkg" / "alpha.py"))

        assert '<span id="L1">     1  impor\n</span>' in page.body
        assert "getcwd" not in page.body
